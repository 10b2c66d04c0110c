from app import create_app
from models import db
from models.movie import Movie
from services import movie_service


SAMPLE_MOVIES = [
    {
        "title": "Tokyo Revengers",
        "description": "A thrilling story of time travel and gang conflicts.",
        "director": "Tsutomu Hanabusa",
        "cast": ["Takumi Kitamura", "Yuki Yamada", "Yosuke Sugino"],
        "genre": ["Action", "Drama"],
        "releaseDate": "2021-07-09",
        "duration": 120,
        "language": "Japanese",
        "country": "Japan",
        "featured": True,
    },
    {
        "title": "Demon Slayer: Kimetsu no Yaiba",
        "description": "A young boy becomes a demon slayer to save his sister.",
        "director": "Haruo Sotozaki",
        "cast": ["Natsuki Hanae", "Satomi Sato", "Hiro Shimono"],
        "genre": ["Action", "Adventure"],
        "releaseDate": "2019-04-06",
        "duration": 144,
        "language": "Japanese",
        "country": "Japan",
    },
    {
        "title": "Jujutsu Kaisen 0",
        "description": "A prequel to the hit series, full of curses and action.",
        "director": "Sunghoo Park",
        "cast": ["Megumi Ogata", "Kana Hanazawa", "Mikako Komatsu"],
        "genre": ["Action", "Fantasy"],
        "releaseDate": "2021-12-24",
        "duration": 105,
        "language": "Japanese",
        "country": "Japan",
        "featured": True,
    },
    {
        "title": "Spirited Away",
        "description": "A girl wanders into a world of spirits and must free her parents.",
        "director": "Hayao Miyazaki",
        "cast": ["Rumi Hiiragi", "Miyu Irino", "Mari Natsuki"],
        "genre": ["Animation", "Family", "Fantasy"],
        "releaseDate": "2001-07-20",
        "duration": 125,
        "language": "Japanese",
        "country": "Japan",
    },
    {
        "title": "The Dark Knight",
        "description": "Batman faces the Joker in a battle for Gotham's soul.",
        "director": "Christopher Nolan",
        "cast": ["Christian Bale", "Heath Ledger", "Aaron Eckhart"],
        "genre": ["Action", "Crime", "Drama"],
        "releaseDate": "2008-07-18",
        "duration": 152,
        "language": "English",
        "country": "United States",
        "imdbId": "tt0468569",
    },
]


app = create_app()
with app.app_context():

    def seed_movies():
        created = 0
        for movie in SAMPLE_MOVIES:
            if db.session.query(Movie.id).filter_by(title=movie["title"]).first():
                continue
            result = movie_service.create_movie(movie, "system")
            if not result.success:
                print(f"❌ Could not seed '{movie['title']}': {result.error}")
                continue
            created += 1
        print(f"✅ Seeded {created} movies ({len(SAMPLE_MOVIES) - created} skipped).")

    seed_movies()
