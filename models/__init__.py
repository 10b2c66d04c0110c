from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from .movie import Movie, GENRES  # noqa: E402
from .rating import Rating, HelpfulMark  # noqa: E402
from .watchlist import WatchlistEntry  # noqa: E402


__all__ = [
    "db",
    "Movie",
    "GENRES",
    "Rating",
    "HelpfulMark",
    "WatchlistEntry",
]
