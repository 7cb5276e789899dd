from datetime import datetime, timezone
from typing import Any

from loguru import logger

from connekt.core.constants import USER_PROFILES, USERS, ratings_collection
from connekt.core.security import redact_id
from connekt.models.profile import ProfileMedia, dump_document
from connekt.models.rating import Rating
from connekt.services.document_store import STORE_ERRORS, DocumentStore, collection, document_store
from connekt.services.profile.store import merge_profile_sources
from connekt.shared.ids import time_based_id


def validate_rating(rating: Any) -> int:
    """Reject a missing, zero or out-of-range rating before it reaches the aggregator.

    Raises:
        ValueError: unless ``rating`` is an integer from 1 to 5
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValueError("Rating must be an integer from 1 to 5")
    if not 1 <= rating <= 5:
        raise ValueError("Rating must be an integer from 1 to 5")
    return rating


class RatingService:
    """
    Keeps ``stats.averageRating``/``stats.totalRatings`` in step with the
    append-only ratings sub-collection.

    Every write re-reads the full sub-collection; rating volume per profile
    is small, so the O(n) recount is kept over incremental counters.
    """

    def __init__(self, store: DocumentStore | None = None):
        self.store = store or document_store

    async def add_rating(
        self,
        to_user_id: str,
        from_user_id: str,
        rating: int,
        review: str | None = None,
        project_id: str | None = None,
        project_name: str | None = None,
        media: list[dict[str, Any]] | None = None,
    ) -> bool:
        """
        Write a rating for ``to_user_id`` and immediately recompute the cached average.

        Returns:
            False when the rated profile does not exist, the rating could not be
            stored or the cached stats could not be brought up to date
        """
        validate_rating(rating)
        attachments = [ProfileMedia.model_validate(item) for item in media or []]
        try:
            if not await self._profile_exists(to_user_id):
                logger.warning(f"Cannot rate unknown profile {redact_id(to_user_id)}")
                return False
            rater = await self.store.get(USERS, from_user_id) or {}
            record = Rating(
                id=time_based_id("rating"),
                fromUserId=from_user_id,
                fromUserName=rater.get("displayName") or "Anonymous",
                fromUserPhoto=rater.get("photoURL"),
                rating=rating,
                review=review,
                projectId=project_id,
                projectName=project_name,
                media=attachments,
                createdAt=datetime.now(timezone.utc),
            )
            await self.store.set(ratings_collection(to_user_id), record.id, dump_document(record))
        except STORE_ERRORS as exc:
            logger.error(f"Failed to add rating for {redact_id(to_user_id)}: {exc}")
            return False

        return await self.recompute_average(to_user_id) is not None

    async def _profile_exists(self, uid: str) -> bool:
        return await self.store.exists(USER_PROFILES, uid) or await self.store.exists(USERS, uid)

    async def recompute_average(self, uid: str) -> tuple[float, int] | None:
        """
        Recount the ratings sub-collection and write the cached stats.

        Returns:
            (averageRating, totalRatings), or None when the stats could not be written
        """
        try:
            ratings = await self.store.list_documents(ratings_collection(uid))
            count = len(ratings)
            total = sum(int(item.get("rating", 0)) for item in ratings)
            average = total / count if count > 0 else 0
            if await self.store.exists(USER_PROFILES, uid):
                await self.store.update(
                    USER_PROFILES,
                    uid,
                    {"stats.averageRating": average, "stats.totalRatings": count},
                )
            else:
                # Profile known only from the basic account: materialize the extended record
                minimal = merge_profile_sources(uid, None, await self.store.get(USERS, uid))
                if minimal is None:
                    logger.warning(f"No profile to store rating stats for {redact_id(uid)}")
                    return None
                stats = {"averageRating": average, "totalRatings": count}
                await self.store.set(USER_PROFILES, uid, {**minimal, "stats": stats}, merge=True)
            logger.debug(f"[{redact_id(uid)}] Recomputed rating average {average:.2f} over {count} ratings")
            return average, count
        except STORE_ERRORS as exc:
            logger.error(f"Failed to update average rating for {redact_id(uid)}: {exc}")
            return None

    async def list_ratings(self, uid: str, limit: int = 10) -> list[Rating]:
        """Most recent ``limit`` ratings, newest first. No continuation cursor."""
        try:
            query = collection(ratings_collection(uid)).order_by("createdAt", descending=True).limit(limit)
            return [Rating.model_validate(item) for item in await self.store.query(query)]
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get ratings for {redact_id(uid)}: {exc}")
            return []


rating_service = RatingService()
