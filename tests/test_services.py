import unittest
from unittest import mock

from app import create_app
from models import db
from models.movie import Movie
from models.rating import Rating
from services import ErrorKind, round_rating
from services import movie_service, rating_service, user_service, watchlist_service

from support import FakeIdentityProvider, TestingConfig, make_movie


class TestRoundRating(unittest.TestCase):
    def test_rounds_half_up_to_one_decimal(self):
        self.assertEqual(round_rating(8.25), 8.3)
        self.assertEqual(round_rating(20 / 3), 6.7)
        self.assertEqual(round_rating(7), 7.0)

    def test_empty_average_is_zero(self):
        self.assertEqual(round_rating(None), 0)
        self.assertEqual(round_rating(0), 0)


class TestRatingService(unittest.TestCase):
    def setUp(self):
        self.app = create_app(TestingConfig, FakeIdentityProvider())
        self.ctx = self.app.app_context()
        self.ctx.push()
        self.movie_id = make_movie()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def stats(self):
        movie = db.session.get(Movie, self.movie_id)
        db.session.refresh(movie)
        return movie.average_rating, movie.total_ratings

    def test_repeated_rating_keeps_one_row(self):
        flags = []
        for score in (3, 9, 5):
            result = rating_service.create_or_update_rating(
                "alice", self.movie_id, {"rating": score, "review": f"take {score}"}
            )
            self.assertTrue(result.success)
            flags.append(result.is_update)

        self.assertEqual(flags, [False, True, True])
        ratings = Rating.query.filter_by(movie_id=self.movie_id).all()
        self.assertEqual(len(ratings), 1)
        self.assertEqual(ratings[0].rating, 5)
        self.assertEqual(ratings[0].review, "take 5")
        self.assertEqual(self.stats(), (5.0, 1))

    def test_concurrent_insert_is_retried_as_update(self):
        rating_service.create_or_update_rating(
            "alice", self.movie_id, {"rating": 4}
        )

        # The first lookup misses the row another request already committed
        real_find = rating_service._find_rating
        calls = []

        def stale_find(user_id, movie_id):
            calls.append(user_id)
            if len(calls) == 1:
                return None
            return real_find(user_id, movie_id)

        with mock.patch.object(rating_service, "_find_rating", stale_find):
            result = rating_service.create_or_update_rating(
                "alice", self.movie_id, {"rating": 9}
            )

        self.assertEqual(len(calls), 2)
        self.assertTrue(result.success)
        self.assertTrue(result.is_update)
        self.assertEqual(result.data["rating"], 9)
        self.assertEqual(Rating.query.filter_by(movie_id=self.movie_id).count(), 1)
        self.assertEqual(self.stats(), (9.0, 1))

    def test_aggregate_matches_mean_after_each_write(self):
        scores = {"u1": 10, "u2": 3, "u3": 7, "u4": 7, "u5": 1}
        for user_id, score in scores.items():
            rating_service.create_or_update_rating(
                user_id, self.movie_id, {"rating": score}
            )
            current = list(scores.values())[: list(scores).index(user_id) + 1]
            self.assertEqual(
                self.stats(), (round_rating(sum(current) / len(current)), len(current))
            )

        rating_service.delete_rating("u1", self.movie_id)
        remaining = [3, 7, 7, 1]
        self.assertEqual(self.stats(), (round_rating(sum(remaining) / 4), 4))

    def test_invalid_input(self):
        result = rating_service.create_or_update_rating(
            "alice", self.movie_id, {"rating": 11}
        )
        self.assertFalse(result.success)
        self.assertEqual(result.kind, ErrorKind.VALIDATION)

        result = rating_service.create_or_update_rating(
            "alice", 9999, {"rating": 5}
        )
        self.assertEqual(result.kind, ErrorKind.NOT_FOUND)
        self.assertEqual(Rating.query.count(), 0)

    def test_movie_ratings_sort_ties_newest_first(self):
        for user_id in ("u1", "u2", "u3"):
            rating_service.create_or_update_rating(
                user_id, self.movie_id, {"rating": 6}
            )

        result = rating_service.get_movie_ratings(self.movie_id)
        user_ids = [r["userId"] for r in result.data["ratings"]]
        self.assertEqual(user_ids, ["u3", "u2", "u1"])

        result = rating_service.get_movie_ratings(self.movie_id, sort_by="bogus")
        self.assertEqual(result.kind, ErrorKind.VALIDATION)

    def test_helpful_counter_matches_marks(self):
        rating_service.create_or_update_rating(
            "author", self.movie_id, {"rating": 8, "review": "Solid"}
        )
        rating_id = Rating.query.one().id

        for voter in ("v1", "v2", "v3"):
            self.assertTrue(rating_service.mark_review_helpful(voter, rating_id).success)
        self.assertEqual(
            rating_service.mark_review_helpful("v1", rating_id).kind,
            ErrorKind.CONFLICT,
        )
        self.assertTrue(rating_service.remove_helpful_mark("v2", rating_id).success)

        rating = db.session.get(Rating, rating_id)
        db.session.refresh(rating)
        self.assertEqual(rating.helpful_votes, len(rating.helpful_by))
        self.assertEqual(sorted(rating.helpful_by), ["v1", "v3"])


class TestMovieService(unittest.TestCase):
    def setUp(self):
        self.app = create_app(TestingConfig, FakeIdentityProvider())
        self.ctx = self.app.app_context()
        self.ctx.push()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def test_empty_catalog_pagination(self):
        result = movie_service.get_movies()
        self.assertTrue(result.success)
        self.assertEqual(result.data["movies"], [])
        self.assertEqual(
            result.data["pagination"],
            {
                "currentPage": 1,
                "totalPages": 0,
                "totalCount": 0,
                "hasNextPage": False,
                "hasPrevPage": False,
            },
        )

    def test_update_missing_movie_is_not_found(self):
        result = movie_service.update_movie(9999, {"duration": 0})
        self.assertEqual(result.kind, ErrorKind.NOT_FOUND)

    def test_recompute_all_rating_stats(self):
        movie_id = make_movie()
        db.session.add_all(
            [
                Rating(movie_id=movie_id, user_id="alice", rating=9),
                Rating(movie_id=movie_id, user_id="bob", rating=4),
            ]
        )
        db.session.commit()

        # Rows inserted behind the service's back leave the aggregate stale
        movie = db.session.get(Movie, movie_id)
        self.assertEqual(movie.total_ratings, 0)

        result = movie_service.recompute_all_rating_stats()
        self.assertEqual(result.data, {"moviesUpdated": 1})
        movie = db.session.get(Movie, movie_id)
        self.assertEqual((movie.average_rating, movie.total_ratings), (6.5, 2))

    @unittest.skipUnless(
        TestingConfig.SQLALCHEMY_DATABASE_URI.startswith("sqlite"),
        "needs a database that does not enforce foreign keys",
    )
    def test_purge_orphaned_ratings(self):
        movie_id = make_movie()
        db.session.add(Rating(movie_id=movie_id, user_id="alice", rating=9))
        db.session.commit()

        # A bulk delete skips the ORM cascade and strands the rating
        Movie.query.filter_by(id=movie_id).delete(synchronize_session=False)
        db.session.commit()

        result = movie_service.purge_orphaned_ratings()
        self.assertEqual(result.data, {"deletedCount": 1})
        self.assertEqual(Rating.query.count(), 0)


class TestWatchlistService(unittest.TestCase):
    def setUp(self):
        self.app = create_app(TestingConfig, FakeIdentityProvider())
        self.ctx = self.app.app_context()
        self.ctx.push()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def test_add_is_not_an_upsert(self):
        self.assertTrue(watchlist_service.add_to_watchlist("alice", 42).success)
        result = watchlist_service.add_to_watchlist("alice", "42")
        self.assertEqual(result.kind, ErrorKind.CONFLICT)
        self.assertEqual(len(watchlist_service.get_user_watchlist("alice").data), 1)

    def test_clear_empty_watchlist(self):
        result = watchlist_service.clear_user_watchlist("nobody")
        self.assertEqual(result.data, {"deletedCount": 0})


class TestUserService(unittest.TestCase):
    def setUp(self):
        self.identity = FakeIdentityProvider()
        self.identity.add_user("founder", email="founder@example.com")
        self.identity.add_user("alice")
        self.app = create_app(TestingConfig, self.identity)
        self.ctx = self.app.app_context()
        self.ctx.push()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def test_initialize_super_admin(self):
        result = user_service.initialize_super_admin("founder@example.com")
        self.assertTrue(result.success)
        self.assertTrue(result.data["isAdmin"])
        self.assertTrue(self.identity.users["founder"]["public_metadata"]["isFounder"])

        # Running it again leaves the account alone
        result = user_service.initialize_super_admin("founder@example.com")
        self.assertEqual(result.message, "Already an admin")

        result = user_service.initialize_super_admin("missing@example.com")
        self.assertEqual(result.kind, ErrorKind.NOT_FOUND)

    def test_list_admins(self):
        user_service.set_user_admin_status("alice", True, promoted_by="founder")
        result = user_service.list_admins()
        self.assertEqual(result.data["totalAdmins"], 1)
        self.assertEqual(result.data["admins"][0]["id"], "alice")
        self.assertIsNotNone(result.data["admins"][0]["promotedAt"])

    def test_provider_outage_is_reported(self):
        self.identity.unavailable = True
        result = user_service.get_user_by_id("alice")
        self.assertFalse(result.success)
        self.assertEqual(result.kind, ErrorKind.UNAVAILABLE)


if __name__ == "__main__":
    unittest.main()
