from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.watchlist import WatchlistEntry
from services import ErrorKind, ServiceResult


def add_to_watchlist(user_id, movie_id):
    """Adds a movie; a duplicate add is a conflict, never an upsert."""
    entry = WatchlistEntry(user_id=user_id, movie_id=str(movie_id))
    try:
        db.session.add(entry)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return ServiceResult.fail(ErrorKind.CONFLICT, "Movie already in watchlist")
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error adding to watchlist")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to add to watchlist")

    current_app.logger.debug("Watchlist entry %s added for %s", movie_id, user_id)
    return ServiceResult.ok(entry.to_dict())


def remove_from_watchlist(user_id, movie_id):
    try:
        entry = WatchlistEntry.query.filter_by(
            user_id=user_id, movie_id=str(movie_id)
        ).first()
        if not entry:
            return ServiceResult.fail(
                ErrorKind.NOT_FOUND, "Movie not found in watchlist"
            )
        data = entry.to_dict()
        db.session.delete(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error removing from watchlist")
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to remove from watchlist"
        )

    return ServiceResult.ok(data)


def get_user_watchlist(user_id):
    try:
        entries = (
            WatchlistEntry.query.filter_by(user_id=user_id)
            .order_by(WatchlistEntry.added_at.desc(), WatchlistEntry.id.desc())
            .all()
        )
    except SQLAlchemyError:
        current_app.logger.exception("Error getting user watchlist")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to get watchlist")

    return ServiceResult.ok([entry.to_dict() for entry in entries])


def clear_user_watchlist(user_id):
    try:
        deleted = WatchlistEntry.query.filter_by(user_id=user_id).delete(
            synchronize_session=False
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error clearing watchlist")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to clear watchlist")

    return ServiceResult.ok({"deletedCount": deleted})


def is_in_watchlist(user_id, movie_id):
    try:
        entry = WatchlistEntry.query.filter_by(
            user_id=user_id, movie_id=str(movie_id)
        ).first()
    except SQLAlchemyError:
        current_app.logger.exception("Error checking watchlist")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to check watchlist")

    return ServiceResult.ok({"isInWatchlist": entry is not None})
