"""
Repairs rating aggregates: deletes ratings that reference movies which no
longer exist, then recomputes averageRating / totalRatings on every movie.
"""

from app import create_app
from services import movie_service


app = create_app()
with app.app_context():

    def reconcile_ratings():
        purged = movie_service.purge_orphaned_ratings()
        if not purged.success:
            print(f"❌ Purge failed: {purged.error}")
            return
        print(f"✅ Removed {purged.data['deletedCount']} orphaned ratings.")

        recomputed = movie_service.recompute_all_rating_stats()
        if not recomputed.success:
            print(f"❌ Recompute failed: {recomputed.error}")
            return
        print(
            f"✅ Recomputed rating stats for {recomputed.data['moviesUpdated']} movies."
        )

    reconcile_ratings()
