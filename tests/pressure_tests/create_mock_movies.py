import random
import sys
import os
from datetime import date

sys.path.insert(
    0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))
)

from app import create_app, db

from models.movie import GENRES, Movie
from models.rating import Rating
from services.movie_service import recompute_all_rating_stats

MOVIE_COUNT = 1000
RATERS_PER_MOVIE = 20

# Create app context
app = create_app()
with app.app_context():

    def create_mock_movies():
        movies = []  # List to store movie objects for bulk insert
        for i in range(1, MOVIE_COUNT + 1):  # mock-movie-1 to mock-movie-1000
            movies.append(
                Movie(
                    title=f"mock-movie-{i}",
                    description=f"Generated movie number {i} for load testing.",
                    director=f"mock-director-{i % 50}",
                    cast=[f"mock-actor-{i % 200}", f"mock-actor-{(i + 1) % 200}"],
                    genre=random.sample(GENRES, 2),
                    release_date=date(1980 + i % 45, 1 + i % 12, 1 + i % 28),
                    duration=80 + i % 100,
                    language="English",
                    country="United States",
                    added_by="mock-admin",
                )
            )

        db.session.add_all(movies)
        db.session.flush()  # assigns ids for the ratings below

        ratings = [
            Rating(
                movie_id=movie.id,
                user_id=f"mock-user-{j}",
                rating=random.randint(1, 10),
                review="Generated review" if j % 3 == 0 else "",
            )
            for movie in movies
            for j in range(1, RATERS_PER_MOVIE + 1)
        ]
        db.session.bulk_save_objects(ratings)
        db.session.commit()
        print(f"✅ Successfully created {len(movies)} mock movies.")
        print(f"✅ Successfully created {len(ratings)} mock ratings.")

    # Run the function, then bring the aggregates in line with the new rows
    create_mock_movies()
    result = recompute_all_rating_stats()
    if result.success:
        print(f"✅ Rating stats refreshed for {result.data['moviesUpdated']} movies.")
    else:
        print(f"❌ Failed to refresh rating stats: {result.error}")
