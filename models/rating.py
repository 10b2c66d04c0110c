from datetime import datetime, timezone

from sqlalchemy.orm import validates

from . import db


class Rating(db.Model):
    __tablename__ = "ratings"

    id = db.Column(db.Integer, primary_key=True)
    movie_id = db.Column(
        db.Integer,
        db.ForeignKey("movies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False, index=True)
    review = db.Column(db.String(1000), nullable=True)
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    helpful_votes = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    helpful_marks = db.relationship(
        "HelpfulMark",
        backref="rating",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    # One rating per user per movie
    __table_args__ = (
        db.UniqueConstraint("movie_id", "user_id", name="unique_movie_user"),
        db.CheckConstraint(
            "rating >= 1 AND rating <= 10", name="ck_rating_range"
        ),
        db.CheckConstraint("helpful_votes >= 0", name="ck_helpful_votes"),
    )

    @validates("rating")
    def validate_rating(self, key, value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("Rating must be an integer")
        if value < 1 or value > 10:
            raise ValueError("Rating must be between 1 and 10")
        return value

    @validates("review")
    def validate_review(self, key, value):
        if value is not None:
            value = value.strip()
            if len(value) > 1000:
                raise ValueError("Review cannot exceed 1000 characters")
        return value

    @property
    def helpful_by(self):
        return [mark.user_id for mark in self.helpful_marks]

    def to_dict(self):
        return {
            "id": self.id,
            "movieId": self.movie_id,
            "userId": self.user_id,
            "rating": self.rating,
            "review": self.review or "",
            "isPublic": self.is_public,
            "helpfulVotes": self.helpful_votes or 0,
            "helpfulBy": self.helpful_by,
            "createdAt": (
                self.created_at.isoformat() if self.created_at else None
            ),
            "updatedAt": (
                self.updated_at.isoformat() if self.updated_at else None
            ),
        }

    def __repr__(self):
        return f"<Rating id={self.id}, movie_id={self.movie_id}, user_id={self.user_id}, rating={self.rating}>"


class HelpfulMark(db.Model):
    __tablename__ = "helpful_marks"

    id = db.Column(db.Integer, primary_key=True)
    rating_id = db.Column(
        db.Integer,
        db.ForeignKey("ratings.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = db.Column(db.String(64), nullable=False)
    created_at = db.Column(
        db.DateTime, default=lambda: datetime.now(timezone.utc)
    )

    # A voter can mark a given review helpful at most once
    __table_args__ = (
        db.UniqueConstraint("rating_id", "user_id", name="unique_helpful_mark"),
    )

    def __repr__(self):
        return f"<HelpfulMark rating_id={self.rating_id}, user_id={self.user_id}>"
