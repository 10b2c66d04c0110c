from datetime import datetime, timezone

from . import db


class WatchlistEntry(db.Model):
    __tablename__ = "watchlist_entries"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    movie_id = db.Column(db.String(64), nullable=False)  # opaque, not a FK
    added_at = db.Column(
        db.DateTime, default=lambda: datetime.now(timezone.utc)
    )
    created_at = db.Column(
        db.DateTime, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Prevent duplicate entries by the same user
    __table_args__ = (
        db.UniqueConstraint("user_id", "movie_id", name="unique_user_movie"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "movieId": self.movie_id,
            "addedAt": self.added_at.isoformat() if self.added_at else None,
            "createdAt": (
                self.created_at.isoformat() if self.created_at else None
            ),
        }

    def __repr__(self):
        return f"<WatchlistEntry id={self.id}, user_id={self.user_id}, movie_id={self.movie_id}>"
