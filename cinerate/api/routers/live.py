import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from cinerate import config
from cinerate.live.relay import WebSocketSubscriber


logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


@router.websocket("/ws")
async def live_updates(websocket: WebSocket):
    """
    Live review updates.

    Inbound:  {"event": "join-movie", "movie_id": "..."}
              {"event": "leave-movie", "movie_id": "..."}
    Outbound: {"event": "joined" | "left", "movie_id": "..."}
              {"event": "review-added", "movie_id": "...", "review": {...}, "author": {...}}
              {"event": "error", "detail": "..."}
    """
    relay = websocket.app.state.relay
    await websocket.accept()

    subscriber = WebSocketSubscriber(websocket, max_queue=config.LIVE_QUEUE_SIZE)
    sender = asyncio.create_task(subscriber.pump())

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (ValueError, KeyError):
                # KeyError: binary frame without a "text" part
                subscriber.deliver({"event": "error", "detail": "Messages must be JSON text frames."})
                continue

            event = message.get("event") if isinstance(message, dict) else None
            movie_id = message.get("movie_id") if isinstance(message, dict) else None

            if event in ("join-movie", "leave-movie") and movie_id is not None:
                movie_id = str(movie_id)
                if event == "join-movie":
                    relay.subscribe(subscriber, movie_id)
                    subscriber.deliver({"event": "joined", "movie_id": movie_id})
                else:
                    relay.unsubscribe(subscriber, movie_id)
                    subscriber.deliver({"event": "left", "movie_id": movie_id})
            else:
                subscriber.deliver({"event": "error", "detail": f"Unknown event {event!r}."})
    except WebSocketDisconnect:
        logger.debug("Live connection %s closed.", id(subscriber))
    finally:
        relay.unsubscribe_all(subscriber)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await sender
