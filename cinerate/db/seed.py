import json
import logging
from pathlib import Path
from typing import Union

from cinerate.db.store import EntityStore
from cinerate.services.ratings import vote_average_to_rating


logger = logging.getLogger(__name__)


def seed_movies(store: EntityStore, path: Union[str, Path]) -> int:
    '''
    Loads the movie catalog from a JSON file into an empty store.

    The catalog carries the imported vote average as tenths ("vote_average_x10",
    84 == 8.4 of 10). It is converted to the 1-10 scale and kept as
    external_rating; the review aggregate of every seeded movie starts at 0.

    Parameters
    ----------
    store: EntityStore
        Target store.
    path: str or Path
        JSON file holding a list of movie objects.

    Returns
    -------
    Number of inserted movies, 0 if the store already had movies.
    '''
    if store.list_all_movies():
        logger.info("[seed] Movie catalog already present, skipping seed.")
        return 0

    with open(path, "r", encoding="utf-8") as f:
        movies_data = json.load(f)

    for row in movies_data:
        data = dict(row)
        movie_id = data.pop("id", None)
        data["external_rating"] = vote_average_to_rating(data.pop("vote_average_x10", None))
        store.create_movie(data, movie_id=movie_id)

    logger.info("[seed] %d movies added to the catalog.", len(movies_data))
    return len(movies_data)
