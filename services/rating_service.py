from flask import current_app
from pydantic import ValidationError
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from models import db
from models.movie import Movie
from models.rating import HelpfulMark, Rating
from schemas import RatingInput, format_validation_error
from services import (
    ErrorKind,
    ServiceResult,
    page_out_of_range,
    paginate,
    resolve_sort,
    round_rating,
)
from services.movie_service import apply_rating_stats


RATING_SORT_FIELDS = {
    "createdAt": Rating.created_at,
    "updatedAt": Rating.updated_at,
    "rating": Rating.rating,
    "helpfulVotes": Rating.helpful_votes,
}


def _find_rating(user_id, movie_id):
    return Rating.query.filter_by(user_id=user_id, movie_id=movie_id).first()


def _apply_payload(rating, payload):
    rating.rating = payload.rating
    rating.review = payload.review or ""
    rating.is_public = payload.is_public


# =================================
#       Rate / Unrate
# =================================


def create_or_update_rating(user_id, movie_id, rating_data):
    """
    Create the user's rating for a movie, or overwrite it if one exists.
    The movie's aggregate is recomputed in the same transaction.
    result.is_update tells the two cases apart.
    """
    try:
        payload = RatingInput.model_validate(rating_data)
    except ValidationError as e:
        return ServiceResult.fail(ErrorKind.VALIDATION, format_validation_error(e))

    # A concurrent insert for the same (movie, user) pair loses on the unique
    # constraint; the second pass then finds the row and updates it.
    for attempt in range(2):
        try:
            if not db.session.get(Movie, movie_id):
                return ServiceResult.fail(ErrorKind.NOT_FOUND, "Movie not found")

            rating = _find_rating(user_id, movie_id)
            is_update = rating is not None
            if not is_update:
                rating = Rating(user_id=user_id, movie_id=movie_id)
                db.session.add(rating)
            _apply_payload(rating, payload)

            if apply_rating_stats(movie_id) is None:
                db.session.rollback()
                return ServiceResult.fail(ErrorKind.NOT_FOUND, "Movie not found")
            db.session.commit()
        except ValueError as e:
            db.session.rollback()
            return ServiceResult.fail(ErrorKind.VALIDATION, str(e))
        except IntegrityError:
            db.session.rollback()
            if attempt == 0:
                current_app.logger.info(
                    "Rating race on movie %s for %s, retrying as update",
                    movie_id,
                    user_id,
                )
                continue
            current_app.logger.exception("Error saving rating")
            return ServiceResult.fail(ErrorKind.CONFLICT, "Failed to save rating")
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Error creating/updating rating")
            return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to save rating")

        return ServiceResult.ok(rating.to_dict(), is_update=is_update)


def delete_rating(user_id, movie_id):
    try:
        rating = _find_rating(user_id, movie_id)
        if not rating:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Rating not found")

        db.session.delete(rating)
        apply_rating_stats(movie_id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error deleting rating")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to delete rating")

    return ServiceResult.ok(message="Rating deleted successfully")


# =================================
#          Rating Queries
# =================================


def get_user_rating(user_id, movie_id):
    try:
        rating = _find_rating(user_id, movie_id)
    except SQLAlchemyError:
        current_app.logger.exception("Error fetching user rating")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to fetch rating")

    if not rating:
        return ServiceResult.fail(ErrorKind.NOT_FOUND, "Rating not found")
    return ServiceResult.ok(rating.to_dict())


def get_user_ratings(
    user_id, page=1, limit=20, sort_by="createdAt", sort_order="desc"
):
    order = resolve_sort(RATING_SORT_FIELDS, sort_by, sort_order)
    if order is None:
        return ServiceResult.fail(
            ErrorKind.VALIDATION, f"Cannot sort ratings by '{sort_by} {sort_order}'"
        )
    if page_out_of_range(page, limit):
        return ServiceResult.fail(ErrorKind.VALIDATION, f"Page {page} is out of range")

    try:
        query = (
            Rating.query.options(joinedload(Rating.movie))
            .filter(Rating.user_id == user_id)
            .order_by(order, Rating.id.desc())
        )
        ratings, pagination = paginate(query, page, limit)
    except SQLAlchemyError:
        current_app.logger.exception("Error fetching user ratings")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to fetch ratings")

    items = []
    for rating in ratings:
        item = rating.to_dict()
        movie = rating.movie
        item["movie"] = (
            {
                "id": movie.id,
                "title": movie.title,
                "poster": movie.poster,
                "releaseDate": movie.release_date.isoformat(),
                "director": movie.director,
            }
            if movie
            else None
        )
        items.append(item)

    return ServiceResult.ok({"ratings": items, "pagination": pagination})


def get_movie_ratings(
    movie_id,
    page=1,
    limit=20,
    sort_by="helpfulVotes",
    sort_order="desc",
    public_only=True,
):
    order = resolve_sort(RATING_SORT_FIELDS, sort_by, sort_order)
    if order is None:
        return ServiceResult.fail(
            ErrorKind.VALIDATION, f"Cannot sort ratings by '{sort_by} {sort_order}'"
        )
    if page_out_of_range(page, limit):
        return ServiceResult.fail(ErrorKind.VALIDATION, f"Page {page} is out of range")

    try:
        query = Rating.query.filter(Rating.movie_id == movie_id)
        if public_only:
            query = query.filter(Rating.is_public.is_(True))
        # ties always fall back to newest first
        query = query.order_by(order, Rating.created_at.desc(), Rating.id.desc())
        ratings, pagination = paginate(query, page, limit)
    except SQLAlchemyError:
        current_app.logger.exception("Error fetching movie ratings")
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to fetch movie ratings"
        )

    return ServiceResult.ok(
        {
            "ratings": [rating.to_dict() for rating in ratings],
            "pagination": pagination,
        }
    )


def get_user_rating_stats(user_id):
    has_review = case(
        ((Rating.review.isnot(None)) & (Rating.review != ""), 1), else_=0
    )
    try:
        total, average, reviews = (
            db.session.query(
                func.count(Rating.id),
                func.avg(Rating.rating),
                func.coalesce(func.sum(has_review), 0),
            )
            .filter(Rating.user_id == user_id)
            .one()
        )
    except SQLAlchemyError:
        current_app.logger.exception("Error fetching user rating stats")
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to fetch rating statistics"
        )

    return ServiceResult.ok(
        {
            "totalRatings": total or 0,
            "averageRating": round_rating(average),
            "totalReviews": int(reviews or 0),
        }
    )


# =================================
#          Helpful Marks
# =================================


def mark_review_helpful(user_id, rating_id):
    try:
        rating = db.session.get(Rating, rating_id)
        if not rating:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")
        if user_id in rating.helpful_by:
            return ServiceResult.fail(
                ErrorKind.CONFLICT, "You have already marked this review as helpful"
            )
        if rating.user_id == user_id:
            return ServiceResult.fail(
                ErrorKind.FORBIDDEN, "You cannot mark your own review as helpful"
            )

        # mark row and counter move together in one commit
        rating.helpful_marks.append(HelpfulMark(user_id=user_id))
        rating.helpful_votes = Rating.helpful_votes + 1
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return ServiceResult.fail(
            ErrorKind.CONFLICT, "You have already marked this review as helpful"
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error marking review %s helpful", rating_id)
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to mark review as helpful"
        )

    return ServiceResult.ok({"helpfulVotes": rating.helpful_votes})


def remove_helpful_mark(user_id, rating_id):
    try:
        rating = db.session.get(Rating, rating_id)
        if not rating:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")

        mark = next(
            (m for m in rating.helpful_marks if m.user_id == user_id), None
        )
        if mark is None:
            return ServiceResult.fail(
                ErrorKind.CONFLICT, "You have not marked this review as helpful"
            )

        rating.helpful_marks.remove(mark)
        rating.helpful_votes = Rating.helpful_votes - 1
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error removing helpful mark on %s", rating_id)
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to remove helpful mark"
        )

    return ServiceResult.ok({"helpfulVotes": rating.helpful_votes})
