from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from cinerate.api.dependencies import get_store
from cinerate.api.schemas import MovieResponse
from cinerate.db.store import EntityStore
from cinerate.errors import NotFound


router = APIRouter(prefix="/api/movies", tags=["movies"])

SortBy = Literal["newest", "oldest", "rating", "title"]

_SORT_KEYS = {
    "newest": (lambda m: m.year, True),
    "oldest": (lambda m: m.year, False),
    "rating": (lambda m: m.average_rating, True),
    "title": (lambda m: m.title.lower(), False),
}


@router.get("", response_model=List[MovieResponse])
def list_movies(
    genre: Optional[str] = Query(None, description='Genre tag, "all" or empty for every genre'),
    search: Optional[str] = Query(None, description="Text searched in title, description, genres and cast"),
    sort_by: Optional[SortBy] = Query(None, description="newest, oldest, rating or title"),
    store: EntityStore = Depends(get_store),
):
    """
    Lists the catalog. A search term takes precedence over the genre filter.

    **Parameters**:\n
    `genre` (str, query): case-insensitive exact genre tag.\n
    `search` (str, query): case-insensitive substring.\n
    `sort_by` (str, query): optional server-side ordering, catalog order otherwise.
    """
    if search:
        movies = store.search_movies(search)
    elif genre and genre.lower() != "all":
        movies = store.get_movies_by_genre(genre)
    else:
        movies = store.list_all_movies()

    if sort_by:
        key, reverse = _SORT_KEYS[sort_by]
        movies = sorted(movies, key=key, reverse=reverse)

    return [MovieResponse.model_validate(movie) for movie in movies]


@router.get("/genres", response_model=List[str])
def list_genres(store: EntityStore = Depends(get_store)):
    """
    Distinct genre tags of the catalog in first-seen order.
    """
    genres: List[str] = []
    seen = set()
    for movie in store.list_all_movies():
        for tag in movie.genres:
            if tag.lower() not in seen:
                seen.add(tag.lower())
                genres.append(tag)
    return genres


@router.get("/{movie_id}", response_model=MovieResponse)
def get_movie(movie_id: str, store: EntityStore = Depends(get_store)):
    movie = store.get_movie_by_id(movie_id)
    if movie is None:
        raise NotFound("Movie not found.")
    return MovieResponse.model_validate(movie)
