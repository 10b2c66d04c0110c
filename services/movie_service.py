from flask import current_app
from pydantic import ValidationError
from sqlalchemy import String, cast, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.movie import GENRES, Movie
from models.rating import Rating
from schemas import MovieCreate, MovieUpdate, format_validation_error
from services import (
    ErrorKind,
    ServiceResult,
    page_out_of_range,
    paginate,
    resolve_sort,
    round_rating,
)


MOVIE_SORT_FIELDS = {
    "createdAt": Movie.created_at,
    "updatedAt": Movie.updated_at,
    "title": Movie.title,
    "releaseDate": Movie.release_date,
    "averageRating": Movie.average_rating,
    "totalRatings": Movie.total_ratings,
    "duration": Movie.duration,
}

MAX_EMBEDDED_REVIEWS = 10


def _constraint_error(error, fallback):
    if "imdb_id" in str(error.orig):
        return "A movie with this IMDb ID already exists"
    return fallback


# =================================
#        Catalog Queries
# =================================


def get_movies(
    page=1,
    limit=20,
    genre=None,
    search=None,
    sort_by="createdAt",
    sort_order="desc",
    active_only=True,
    featured_only=False,
):
    order = resolve_sort(MOVIE_SORT_FIELDS, sort_by, sort_order)
    if order is None:
        return ServiceResult.fail(
            ErrorKind.VALIDATION, f"Cannot sort movies by '{sort_by} {sort_order}'"
        )
    if genre and genre not in GENRES:
        return ServiceResult.fail(ErrorKind.VALIDATION, f"Unknown genre '{genre}'")
    if page_out_of_range(page, limit):
        return ServiceResult.fail(ErrorKind.VALIDATION, f"Page {page} is out of range")

    try:
        query = Movie.query
        if active_only:
            query = query.filter(Movie.is_active.is_(True))
        if featured_only:
            query = query.filter(Movie.featured.is_(True))
        if genre:
            # genre is a JSON list; match the quoted member in its text form
            query = query.filter(cast(Movie.genre, String).like(f'%"{genre}"%'))
        if search and search.strip():
            conditions = []
            for term in search.split():
                # % and _ in a term are literal characters
                conditions.extend(
                    [
                        Movie.title.icontains(term, autoescape=True),
                        Movie.description.icontains(term, autoescape=True),
                        Movie.director.icontains(term, autoescape=True),
                    ]
                )
            query = query.filter(or_(*conditions))

        query = query.order_by(order, Movie.id.desc())
        movies, pagination = paginate(query, page, limit)
    except SQLAlchemyError:
        current_app.logger.exception("Error fetching movies")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to fetch movies")

    return ServiceResult.ok(
        {
            "movies": [movie.to_dict() for movie in movies],
            "pagination": pagination,
        }
    )


def get_movie_by_id(movie_id, include_reviews=True, viewer_is_admin=False):
    """
    Fetch a single movie. Inactive movies are reported as missing unless the
    viewer is an admin. With include_reviews, up to ten public reviews that
    carry text are attached, most helpful first.
    """
    try:
        movie = db.session.get(Movie, movie_id)
        if not movie or (not movie.is_active and not viewer_is_admin):
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Movie not found")

        data = movie.to_dict()
        if include_reviews:
            reviews = (
                Rating.query.filter(
                    Rating.movie_id == movie.id,
                    Rating.is_public.is_(True),
                    Rating.review.isnot(None),
                    Rating.review != "",
                )
                .order_by(
                    Rating.helpful_votes.desc(),
                    Rating.created_at.desc(),
                    Rating.id.desc(),
                )
                .limit(MAX_EMBEDDED_REVIEWS)
                .all()
            )
            data["reviews"] = [review.to_dict() for review in reviews]
    except SQLAlchemyError:
        current_app.logger.exception("Error fetching movie %s", movie_id)
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to fetch movie")

    return ServiceResult.ok(data)


# =================================
#        Catalog Mutations
# =================================


def create_movie(movie_data, admin_user_id):
    try:
        payload = MovieCreate.model_validate(movie_data)
        movie = Movie(**payload.model_dump(), added_by=admin_user_id)
        db.session.add(movie)
        db.session.commit()
    except ValidationError as e:
        return ServiceResult.fail(ErrorKind.VALIDATION, format_validation_error(e))
    except ValueError as e:
        db.session.rollback()
        return ServiceResult.fail(ErrorKind.VALIDATION, str(e))
    except IntegrityError as e:
        db.session.rollback()
        return ServiceResult.fail(
            ErrorKind.CONFLICT, _constraint_error(e, "Failed to create movie")
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error creating movie")
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to create movie")

    current_app.logger.info("Movie %s created by %s", movie.id, admin_user_id)
    return ServiceResult.ok(movie.to_dict())


def update_movie(movie_id, update_data):
    try:
        movie = db.session.get(Movie, movie_id)
        if not movie:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Movie not found")

        payload = MovieUpdate.model_validate(update_data)
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(movie, field, value)
        db.session.commit()
    except ValidationError as e:
        return ServiceResult.fail(ErrorKind.VALIDATION, format_validation_error(e))
    except ValueError as e:
        db.session.rollback()
        return ServiceResult.fail(ErrorKind.VALIDATION, str(e))
    except IntegrityError as e:
        db.session.rollback()
        return ServiceResult.fail(
            ErrorKind.CONFLICT, _constraint_error(e, "Failed to update movie")
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error updating movie %s", movie_id)
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to update movie")

    return ServiceResult.ok(movie.to_dict())


def delete_movie(movie_id):
    """Deletes the movie together with its ratings in one transaction."""
    try:
        movie = db.session.get(Movie, movie_id)
        if not movie:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Movie not found")

        rating_count = len(movie.ratings)
        db.session.delete(movie)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error deleting movie %s", movie_id)
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, "Failed to delete movie")

    current_app.logger.info(
        "Movie %s deleted along with %d ratings", movie_id, rating_count
    )
    return ServiceResult.ok(
        message="Movie and associated ratings deleted successfully"
    )


def _set_flag(movie_id, field, value, failure):
    try:
        movie = db.session.get(Movie, movie_id)
        if not movie:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Movie not found")
        setattr(movie, field, value)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error updating %s on movie %s", field, movie_id)
        return ServiceResult.fail(ErrorKind.UNAVAILABLE, failure)
    return ServiceResult.ok(movie.to_dict())


def toggle_movie_status(movie_id, is_active):
    return _set_flag(
        movie_id, "is_active", is_active, "Failed to update movie status"
    )


def toggle_movie_featured(movie_id, featured):
    return _set_flag(
        movie_id, "featured", featured, "Failed to update movie featured status"
    )


# =================================
#        Rating Aggregates
# =================================


def apply_rating_stats(movie_id):
    """
    Recomputes averageRating / totalRatings for a movie from the ratings
    table and stages them on the movie row. The caller commits, so the
    triggering rating write and the aggregate land in one transaction.
    Returns the movie, or None if it no longer exists.
    """
    db.session.flush()
    average, total = (
        db.session.query(func.avg(Rating.rating), func.count(Rating.id))
        .filter(Rating.movie_id == movie_id)
        .one()
    )
    movie = db.session.get(Movie, movie_id)
    if movie is None:
        return None
    movie.average_rating = round_rating(average)
    movie.total_ratings = total or 0
    return movie


def update_movie_rating_stats(movie_id):
    try:
        movie = apply_rating_stats(movie_id)
        if movie is None:
            db.session.rollback()
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Movie not found")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Error updating rating stats for movie %s", movie_id
        )
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to update rating statistics"
        )

    return ServiceResult.ok(
        {
            "averageRating": movie.average_rating,
            "totalRatings": movie.total_ratings,
        }
    )


def get_movie_stats():
    try:
        total_movies = Movie.query.count()
        active_movies = Movie.query.filter(Movie.is_active.is_(True)).count()
        featured_movies = Movie.query.filter(Movie.featured.is_(True)).count()
        total_ratings = Rating.query.count()
        # mean over every rating row, not a mean of per-movie averages
        overall = db.session.query(func.avg(Rating.rating)).scalar()
    except SQLAlchemyError:
        current_app.logger.exception("Error fetching movie stats")
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to fetch movie statistics"
        )

    return ServiceResult.ok(
        {
            "totalMovies": total_movies,
            "activeMovies": active_movies,
            "featuredMovies": featured_movies,
            "totalRatings": total_ratings,
            "averageRatingOverall": float(overall) if overall else 0,
        }
    )


# =================================
#         Reconciliation
# =================================


def purge_orphaned_ratings():
    """Deletes ratings whose movie no longer exists. Returns the count."""
    try:
        orphans = (
            Rating.query.outerjoin(Movie, Rating.movie_id == Movie.id)
            .filter(Movie.id.is_(None))
            .all()
        )
        for rating in orphans:
            db.session.delete(rating)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error purging orphaned ratings")
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to purge orphaned ratings"
        )

    if orphans:
        current_app.logger.warning("Purged %d orphaned ratings", len(orphans))
    return ServiceResult.ok({"deletedCount": len(orphans)})


def recompute_all_rating_stats():
    try:
        movie_ids = [row.id for row in db.session.query(Movie.id).all()]
        for movie_id in movie_ids:
            apply_rating_stats(movie_id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error recomputing rating stats")
        return ServiceResult.fail(
            ErrorKind.UNAVAILABLE, "Failed to recompute rating statistics"
        )

    return ServiceResult.ok({"moviesUpdated": len(movie_ids)})
