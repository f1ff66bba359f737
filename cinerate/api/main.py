from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.exc import SQLAlchemyError

from cinerate import config
from cinerate.api.routers import auth, live, movies, reviews, users
from cinerate.api.schemas import HealthResponse
from cinerate.db.database_session import make_engine, make_session_factory
from cinerate.db.seed import seed_movies
from cinerate.db.store import EntityStore
from cinerate.errors import CineRateError, Unauthenticated
from cinerate.live.relay import LiveUpdateRelay
from cinerate.services.auth import AuthGate
from cinerate.services.ratings import RatingAggregator
from cinerate.services.reviews import ReviewService


logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


def build_store(db_url: str = config.DB_URL) -> EntityStore:
    '''
    Creates engine, tables and the store for the given database url.
    '''
    engine = make_engine(db_url)
    return EntityStore(make_session_factory(engine))


def create_app(
    store: Optional[EntityStore] = None,
    relay: Optional[LiveUpdateRelay] = None,
    seed_path: Optional[str] = config.SEED_MOVIES_PATH,
) -> FastAPI:
    '''
    Builds the application and wires its collaborators. Each app gets exactly one
    store, relay, review service and auth gate, reachable through app.state.

    Parameters
    ----------
    store: EntityStore, optional
        Store to use, a fresh one for config.DB_URL otherwise.
    relay: LiveUpdateRelay, optional
        Relay to use, a fresh one otherwise.
    seed_path: str, optional
        JSON movie catalog loaded at startup into an empty store. None disables
        seeding.
    '''
    store = store or build_store()
    relay = relay or LiveUpdateRelay()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan handler: runs once at startup and once at shutdown.
        Seeds the catalog and drops sessions that expired while the app was down.
        """
        if seed_path:
            seed_movies(store, seed_path)
        store.purge_expired_sessions()
        logger.info("[startup] CineRate API ready.")

        yield                                       # app runs while yielded

        logger.info("[shutdown] CineRate API shutting down.")

    app = FastAPI(
        title="CineRate API",
        description="Movie catalog with user ratings, reviews and live review updates.",
        lifespan=lifespan,
    )

    app.state.store = store
    app.state.relay = relay
    app.state.aggregator = RatingAggregator(store)
    app.state.reviews = ReviewService(store, app.state.aggregator, relay)
    app.state.auth = AuthGate(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s %d in %.0fms",
                request.method, request.url.path, response.status_code, duration_ms,
            )
        return response

    # Include router endpoints
    app.include_router(auth.router)
    app.include_router(movies.router)
    app.include_router(reviews.router)
    app.include_router(users.router)
    app.include_router(live.router)

    @app.exception_handler(CineRateError)
    async def cinerate_error_handler(_: Request, exc: CineRateError):
        '''
        Every domain error becomes a JSON response with its kind and message.
        '''
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"kind": exc.kind, "detail": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"kind": "ValidationError", "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        '''
        Catches any other exception that wasn't explicitly handled and returns a 500
        JSON response without internal detail.
        '''
        logger.exception("Unhandled error in %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"kind": "InternalError", "detail": "Internal server error."},
        )

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check():
        """
        Lightweight healthcheck endpoint.
        Verifies that the store answers queries. Returns 200 OK if it does, else 500.
        """
        report = {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc),
            "database": "reachable",
            "live_subscriptions": relay.subscription_count(),
        }
        try:
            store.stats()
        except SQLAlchemyError as e:
            logger.exception("Health check failed to query the store.")
            report["status"] = "error"
            report["database"] = f"unreachable ({e.__class__.__name__})"
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=jsonable_encoder(report),
            )
        return report

    @app.get("/metrics", tags=["System"])
    def metrics():
        """
        Prometheus scrape endpoint.
        Returns all registered metrics in Prometheus text format.
        """
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
