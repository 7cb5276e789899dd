import math
from datetime import datetime, timezone
from typing import Any, Final

from loguru import logger
from pydantic import BaseModel, ValidationError

from connekt.core.constants import (
    AGENCY_PROFILES,
    COMPLETED_TASK_STATUSES,
    PROJECTS,
    RECRUITER_PROFILES,
    SECONDS_PER_DAY,
    TASKS,
    USER_PROFILES,
    USERNAMES,
    USERS,
)
from connekt.core.security import redact_id
from connekt.models.custom_sections import CustomSection
from connekt.models.profile import (
    AgencyProfile,
    Certification,
    Education,
    Experience,
    PrivacySettings,
    ProfileStats,
    RecruiterProfile,
    Referral,
    SectionOrderItem,
    UserProfile,
    default_section_order,
    dump_document,
)
from connekt.services.document_store import STORE_ERRORS, DocumentStore, collection, document_store, to_datetime
from connekt.services.profile.privacy import PrivacyFilter
from connekt.shared.ids import time_based_id

# Fields a minimal profile copies from the basic account record when no
# extended record exists yet.
BASIC_ACCOUNT_FIELDS: Final[tuple[str, ...]] = (
    "username",
    "email",
    "displayName",
    "photoURL",
    "bio",
    "title",
    "location",
    "role",
    "skills",
)

# Fields the extended record owns but that fall back to the basic account
# record when empty. Resolved on every read, never written back.
BACKFILL_FIELDS: Final[tuple[str, ...]] = ("bio", "skills")


def merge_profile_sources(
    uid: str, extended: dict[str, Any] | None, basic: dict[str, Any] | None
) -> dict[str, Any] | None:
    """Resolve a profile from the extended record and the basic account record.

    Precedence per field:
      * extended record present: every field comes from it, except that an
        empty ``bio`` or ``skills`` is backfilled from the basic record.
      * extended record absent: the BASIC_ACCOUNT_FIELDS come from the basic
        record and everything else takes model defaults.

    Returns None when neither record exists.
    """
    if extended is None:
        if basic is None:
            return None
        minimal = {name: basic[name] for name in BASIC_ACCOUNT_FIELDS if basic.get(name) is not None}
        minimal["uid"] = uid
        return minimal

    merged = dict(extended)
    merged.setdefault("uid", uid)
    merged.pop("id", None)
    if basic:
        for name in BACKFILL_FIELDS:
            if not merged.get(name) and basic.get(name):
                merged[name] = basic[name]
    return merged


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProfileStore:
    """
    CRUD over the canonical profile records.

    List-valued fields (experience, education, custom sections, ...) are
    mutated by reading the whole list, changing it and writing it back.
    Concurrent editors of the same profile therefore race and the last writer
    wins; profiles are edited by their single owner.
    """

    def __init__(self, store: DocumentStore | None = None):
        self.store = store or document_store

    # ==========================================
    # USER PROFILE
    # ==========================================

    async def get_profile(self, uid: str) -> UserProfile | None:
        """Get the extended user profile, falling back to the basic account record."""
        try:
            extended = await self.store.get(USER_PROFILES, uid)
            basic = None
            needs_basic = extended is None or any(not extended.get(name) for name in BACKFILL_FIELDS)
            if needs_basic:
                basic = await self.store.get(USERS, uid)
            merged = merge_profile_sources(uid, extended, basic)
            if merged is None:
                return None
            return UserProfile.model_validate(merged)
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get profile for {redact_id(uid)}: {exc}")
            return None

    async def resolve_handle(self, handle: str) -> str | None:
        """Map a handle (with or without a leading @) to a uid."""
        key = handle.removeprefix("@").strip().lower()
        if not key:
            return None
        mapping = await self.store.get(USERNAMES, key)
        if not mapping:
            return None
        return mapping.get("uid")

    async def get_profile_by_handle(self, handle: str) -> UserProfile | None:
        try:
            uid = await self.resolve_handle(handle)
        except STORE_ERRORS as exc:
            logger.error(f"Failed to resolve handle '{handle}': {exc}")
            return None
        if uid is None:
            return None
        return await self.get_profile(uid)

    async def get_visible_profile(self, uid: str, viewer_id: str | None) -> UserProfile | None:
        """Get the profile as ``viewer_id`` may see it; None when it cannot be fetched."""
        profile = await self.get_profile(uid)
        if profile is None:
            return None
        return PrivacyFilter.filter_profile(profile, viewer_id, is_owner=viewer_id == uid)

    async def upsert_profile(self, uid: str, data: dict[str, Any]) -> bool:
        """Create or merge fields into a user profile; always stamps updatedAt.

        Raises:
            ValueError: when a field in ``data`` does not fit the profile schema
        """
        UserProfile.model_validate({**data, "uid": uid})
        try:
            await self.store.set(USER_PROFILES, uid, {**data, "uid": uid, "updatedAt": _now()}, merge=True)
            return True
        except STORE_ERRORS as exc:
            logger.error(f"Failed to update profile for {redact_id(uid)}: {exc}")
            return False

    async def initialize_user_profile(self, uid: str, basic_data: dict[str, Any]) -> bool:
        """Create the extended profile with empty collections and default settings."""
        profile = UserProfile(
            uid=uid,
            username=basic_data.get("username", ""),
            email=basic_data.get("email"),
            displayName=basic_data.get("displayName", ""),
            photoURL=basic_data.get("photoURL"),
            role=basic_data.get("role") or "va",
            skills=basic_data.get("skills") or [],
            sectionOrder=default_section_order(),
            createdAt=_now(),
        )
        logger.info(f"Initializing profile for {redact_id(uid)}")
        return await self.upsert_profile(uid, dump_document(profile))

    async def update_privacy_settings(self, uid: str, settings: dict[str, Any]) -> bool:
        """Merge a partial set of privacy settings over the stored ones; unknown visibility values raise ValueError."""
        PrivacySettings.model_validate(settings)
        try:
            raw = await self.store.get(USER_PROFILES, uid)
            if raw is None:
                return False
            merged = PrivacySettings.model_validate({**(raw.get("privacySettings") or {}), **settings})
            await self.store.update(
                USER_PROFILES, uid, {"privacySettings": dump_document(merged), "updatedAt": _now()}
            )
            return True
        except STORE_ERRORS as exc:
            logger.error(f"Failed to update privacy settings for {redact_id(uid)}: {exc}")
            return False

    # ==========================================
    # LIST FIELDS
    # ==========================================

    async def _append_entry(self, uid: str, list_field: str, entry: BaseModel) -> bool:
        raw = await self.store.get(USER_PROFILES, uid)
        if raw is None:
            logger.warning(f"Cannot add to {list_field}: no profile for {redact_id(uid)}")
            return False
        items = list(raw.get(list_field) or [])
        items.append(dump_document(entry))
        await self.store.update(USER_PROFILES, uid, {list_field: items, "updatedAt": _now()})
        return True

    async def _replace_entry(
        self, uid: str, list_field: str, entry_id: str, updates: dict[str, Any], model: type[BaseModel]
    ) -> bool:
        raw = await self.store.get(USER_PROFILES, uid)
        if raw is None:
            return False
        items = list(raw.get(list_field) or [])
        for index, item in enumerate(items):
            if item.get("id") == entry_id:
                merged = model.model_validate({**item, **updates, "id": entry_id})
                items[index] = dump_document(merged)
                break
        else:
            return False
        await self.store.update(USER_PROFILES, uid, {list_field: items, "updatedAt": _now()})
        return True

    async def _remove_entry(
        self, uid: str, list_field: str, entry_id: str, extra: dict[str, Any] | None = None
    ) -> bool:
        raw = await self.store.get(USER_PROFILES, uid)
        if raw is None:
            return False
        items = list(raw.get(list_field) or [])
        remaining = [item for item in items if item.get("id") != entry_id]
        if len(remaining) == len(items):
            return False
        await self.store.update(USER_PROFILES, uid, {list_field: remaining, "updatedAt": _now(), **(extra or {})})
        return True

    async def _add(self, uid: str, list_field: str, entry: BaseModel, label: str) -> str | None:
        try:
            if await self._append_entry(uid, list_field, entry):
                return entry.id
            return None
        except STORE_ERRORS as exc:
            logger.error(f"Failed to add {label} for {redact_id(uid)}: {exc}")
            return None

    async def _update(
        self, uid: str, list_field: str, entry_id: str, updates: dict[str, Any], model: type[BaseModel], label: str
    ) -> bool:
        try:
            return await self._replace_entry(uid, list_field, entry_id, updates, model)
        except ValidationError:
            # Invalid updates surface to the caller
            raise
        except STORE_ERRORS as exc:
            logger.error(f"Failed to update {label} {entry_id} for {redact_id(uid)}: {exc}")
            return False

    async def _delete(self, uid: str, list_field: str, entry_id: str, label: str) -> bool:
        try:
            return await self._remove_entry(uid, list_field, entry_id)
        except STORE_ERRORS as exc:
            logger.error(f"Failed to delete {label} {entry_id} for {redact_id(uid)}: {exc}")
            return False

    # Experience

    async def add_experience(self, uid: str, experience: dict[str, Any]) -> str | None:
        entry = Experience.model_validate({**experience, "id": time_based_id("exp")})
        return await self._add(uid, "experience", entry, "experience")

    async def update_experience(self, uid: str, experience_id: str, updates: dict[str, Any]) -> bool:
        return await self._update(uid, "experience", experience_id, updates, Experience, "experience")

    async def delete_experience(self, uid: str, experience_id: str) -> bool:
        return await self._delete(uid, "experience", experience_id, "experience")

    # Education

    async def add_education(self, uid: str, education: dict[str, Any]) -> str | None:
        entry = Education.model_validate({**education, "id": time_based_id("edu")})
        return await self._add(uid, "education", entry, "education")

    async def update_education(self, uid: str, education_id: str, updates: dict[str, Any]) -> bool:
        return await self._update(uid, "education", education_id, updates, Education, "education")

    async def delete_education(self, uid: str, education_id: str) -> bool:
        return await self._delete(uid, "education", education_id, "education")

    # Certifications

    async def add_certification(self, uid: str, certification: dict[str, Any]) -> str | None:
        entry = Certification.model_validate({**certification, "id": time_based_id("cert")})
        return await self._add(uid, "certifications", entry, "certification")

    async def delete_certification(self, uid: str, certification_id: str) -> bool:
        return await self._delete(uid, "certifications", certification_id, "certification")

    # Referrals

    async def add_referral(
        self,
        to_uid: str,
        from_uid: str,
        relationship: str,
        endorsement: str,
        skills: list[str] | None = None,
    ) -> str | None:
        """Add an endorsement, snapshotting the referrer's name and photo."""
        try:
            referrer = await self.store.get(USERS, from_uid) or {}
        except STORE_ERRORS as exc:
            logger.error(f"Failed to load referrer {redact_id(from_uid)}: {exc}")
            return None
        entry = Referral(
            id=time_based_id("ref"),
            fromUserId=from_uid,
            fromUserName=referrer.get("displayName") or "Anonymous",
            fromUserPhoto=referrer.get("photoURL"),
            relationship=relationship,
            endorsement=endorsement,
            skills=skills or [],
            createdAt=_now(),
        )
        return await self._add(to_uid, "referrals", entry, "referral")

    async def delete_referral(self, uid: str, referral_id: str) -> bool:
        return await self._delete(uid, "referrals", referral_id, "referral")

    # ==========================================
    # CUSTOM SECTIONS & ORDER
    # ==========================================

    async def add_custom_section(self, uid: str, section: dict[str, Any]) -> str | None:
        """Add a custom section and append it to the end of the section order."""
        now = _now()
        entry = CustomSection.model_validate(
            {**section, "id": time_based_id("section"), "createdAt": now, "updatedAt": now}
        )
        try:
            raw = await self.store.get(USER_PROFILES, uid)
            if raw is None:
                return None
            order = self._stored_order(raw)
            order.append(SectionOrderItem(sectionId=entry.id, type="custom", order=len(order)))
            entry.order = len(order) - 1
            sections = list(raw.get("customSections") or [])
            sections.append(dump_document(entry))
            await self.store.update(
                USER_PROFILES,
                uid,
                {
                    "customSections": sections,
                    "sectionOrder": [dump_document(item) for item in order],
                    "updatedAt": now,
                },
            )
            return entry.id
        except STORE_ERRORS as exc:
            logger.error(f"Failed to add custom section for {redact_id(uid)}: {exc}")
            return None

    async def update_custom_section(self, uid: str, section_id: str, updates: dict[str, Any]) -> bool:
        return await self._update(
            uid, "customSections", section_id, {**updates, "updatedAt": _now()}, CustomSection, "custom section"
        )

    async def delete_custom_section(self, uid: str, section_id: str) -> bool:
        """Remove a custom section and its entry in the section order."""
        try:
            raw = await self.store.get(USER_PROFILES, uid)
            if raw is None:
                return False
            order = [item for item in self._stored_order(raw) if item.sectionId != section_id]
            for position, item in enumerate(order):
                item.order = position
            return await self._remove_entry(
                uid,
                "customSections",
                section_id,
                extra={"sectionOrder": [dump_document(item) for item in order]},
            )
        except STORE_ERRORS as exc:
            logger.error(f"Failed to delete custom section {section_id} for {redact_id(uid)}: {exc}")
            return False

    async def update_section_order(self, uid: str, section_order: list[dict[str, Any]]) -> bool:
        """Replace the section order; positions are renumbered by list position."""
        items = [SectionOrderItem.model_validate(item) for item in section_order]
        items.sort(key=lambda item: item.order)
        for position, item in enumerate(items):
            item.order = position
        try:
            if not await self.store.exists(USER_PROFILES, uid):
                return False
            await self.store.update(
                USER_PROFILES, uid, {"sectionOrder": [dump_document(item) for item in items], "updatedAt": _now()}
            )
            return True
        except STORE_ERRORS as exc:
            logger.error(f"Failed to update section order for {redact_id(uid)}: {exc}")
            return False

    @staticmethod
    def _stored_order(raw: dict[str, Any]) -> list[SectionOrderItem]:
        stored = raw.get("sectionOrder")
        if not stored:
            return default_section_order()
        items = [SectionOrderItem.model_validate(item) for item in stored]
        return sorted(items, key=lambda item: item.order)

    # ==========================================
    # STATISTICS
    # ==========================================

    async def update_profile_stats(self, uid: str, now: datetime | None = None) -> bool:
        """Recompute tenure and completed project/task counters from the source collections."""
        now = now or _now()
        try:
            profile = await self.get_profile(uid)
            if profile is None:
                return False

            created = to_datetime(profile.createdAt) or now
            time_on_platform = max(0, math.floor((now - created).total_seconds() / SECONDS_PER_DAY))

            projects = await self.store.query(
                collection(PROJECTS).where("ownerId", "==", uid).where("status", "==", "completed")
            )
            tasks = await self.store.query(
                collection(TASKS)
                .where("assigneeUsername", "==", profile.username)
                .where("status", "in", list(COMPLETED_TASK_STATUSES))
            )

            stats = profile.stats.model_copy(
                update={
                    "timeOnPlatform": time_on_platform,
                    "projectsCompleted": len(projects),
                    "tasksCompleted": len(tasks),
                }
            )
            return await self.upsert_profile(uid, {"stats": dump_document(stats)})
        except STORE_ERRORS as exc:
            logger.error(f"Failed to update profile stats for {redact_id(uid)}: {exc}")
            return False

    async def get_stats(self, uid: str) -> ProfileStats | None:
        profile = await self.get_profile(uid)
        return profile.stats if profile else None

    # ==========================================
    # AGENCY & RECRUITER PROFILES
    # ==========================================

    async def get_agency_profile(self, agency_id: str) -> AgencyProfile | None:
        try:
            raw = await self.store.get(AGENCY_PROFILES, agency_id)
            return AgencyProfile.model_validate(raw) if raw else None
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get agency profile {redact_id(agency_id)}: {exc}")
            return None

    async def update_agency_profile(self, agency_id: str, data: dict[str, Any]) -> bool:
        AgencyProfile.model_validate({**data, "id": agency_id})
        try:
            await self.store.set(
                AGENCY_PROFILES, agency_id, {**data, "id": agency_id, "updatedAt": _now()}, merge=True
            )
            return True
        except STORE_ERRORS as exc:
            logger.error(f"Failed to update agency profile {redact_id(agency_id)}: {exc}")
            return False

    async def get_recruiter_profile(self, uid: str) -> RecruiterProfile | None:
        try:
            raw = await self.store.get(RECRUITER_PROFILES, uid)
            if not raw:
                return None
            raw.pop("id", None)
            return RecruiterProfile.model_validate({"uid": uid, **raw})
        except STORE_ERRORS as exc:
            logger.error(f"Failed to get recruiter profile {redact_id(uid)}: {exc}")
            return None

    async def update_recruiter_profile(self, uid: str, data: dict[str, Any]) -> bool:
        RecruiterProfile.model_validate({**data, "uid": uid})
        try:
            await self.store.set(RECRUITER_PROFILES, uid, {**data, "uid": uid, "updatedAt": _now()}, merge=True)
            return True
        except STORE_ERRORS as exc:
            logger.error(f"Failed to update recruiter profile {redact_id(uid)}: {exc}")
            return False


profile_store = ProfileStore()
