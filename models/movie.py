from datetime import datetime, timezone

from sqlalchemy.orm import validates

from . import db


GENRES = (
    "Action",
    "Adventure",
    "Animation",
    "Biography",
    "Comedy",
    "Crime",
    "Documentary",
    "Drama",
    "Family",
    "Fantasy",
    "History",
    "Horror",
    "Music",
    "Mystery",
    "Romance",
    "Sci-Fi",
    "Sport",
    "Thriller",
    "War",
    "Western",
)


class Movie(db.Model):
    __tablename__ = "movies"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.String(2000), nullable=False)
    director = db.Column(db.String(100), nullable=False)
    cast = db.Column(db.JSON, nullable=False, default=list)
    genre = db.Column(db.JSON, nullable=False, default=list)
    release_date = db.Column(db.Date, nullable=False, index=True)
    duration = db.Column(db.Integer, nullable=False)  # in minutes
    language = db.Column(db.String(100), nullable=False)
    country = db.Column(db.String(100), nullable=False)
    poster = db.Column(db.String(500), nullable=True)
    trailer = db.Column(db.String(500), nullable=True)
    # NULLs don't collide, so only movies that carry an id must be unique
    imdb_id = db.Column(db.String(20), unique=True, nullable=True)
    budget = db.Column(db.Float, nullable=True)
    box_office = db.Column(db.Float, nullable=True)

    # Derived from the ratings table; only rating_service writes these
    average_rating = db.Column(db.Float, nullable=False, default=0, index=True)
    total_ratings = db.Column(db.Integer, nullable=False, default=0)

    added_by = db.Column(db.String(64), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    featured = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(
        db.DateTime, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    ratings = db.relationship(
        "Rating",
        backref="movie",
        lazy=True,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint("duration >= 1", name="ck_movie_duration"),
        db.CheckConstraint(
            "average_rating >= 0 AND average_rating <= 10",
            name="ck_movie_average_rating",
        ),
        db.CheckConstraint("total_ratings >= 0", name="ck_movie_total_ratings"),
        db.CheckConstraint(
            "budget IS NULL OR budget >= 0", name="ck_movie_budget"
        ),
        db.CheckConstraint(
            "box_office IS NULL OR box_office >= 0", name="ck_movie_box_office"
        ),
    )

    @validates("genre")
    def validate_genre(self, key, value):
        value = list(value or [])
        unknown = [g for g in value if g not in GENRES]
        if unknown:
            raise ValueError(f"Invalid genre: {', '.join(map(str, unknown))}")
        return value

    @validates("duration")
    def validate_duration(self, key, value):
        if value is None or int(value) < 1:
            raise ValueError("duration must be at least 1 minute")
        return int(value)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "director": self.director,
            "cast": list(self.cast or []),
            "genre": list(self.genre or []),
            "releaseDate": (
                self.release_date.isoformat() if self.release_date else None
            ),
            "duration": self.duration,
            "language": self.language,
            "country": self.country,
            "poster": self.poster,
            "trailer": self.trailer,
            "imdbId": self.imdb_id,
            "budget": self.budget,
            "boxOffice": self.box_office,
            "averageRating": self.average_rating or 0,
            "totalRatings": self.total_ratings or 0,
            "addedBy": self.added_by,
            "isActive": self.is_active,
            "featured": self.featured,
            "createdAt": (
                self.created_at.isoformat() if self.created_at else None
            ),
            "updatedAt": (
                self.updated_at.isoformat() if self.updated_at else None
            ),
        }

    def __repr__(self):
        return f"<Movie id={self.id}, title={self.title}>"
