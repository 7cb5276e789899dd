from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field

from connekt.api.deps import get_viewer_id, load_profile_or_404, require_owner
from connekt.core.security import redact_id
from connekt.models.profile import ProfileStats, RecruiterProfile, UserProfile
from connekt.models.rating import Rating
from connekt.services.profile.layout import RenderedSection, resolve_layout
from connekt.services.profile.privacy import PrivacyFilter
from connekt.services.profile.ratings import rating_service
from connekt.services.profile.store import profile_store

router = APIRouter(prefix="/profiles", tags=["profiles"])


class RatingRequest(BaseModel):
    rating: int = Field(description="Score from 1 to 5")
    review: str | None = None
    projectId: str | None = None
    projectName: str | None = None
    media: list[dict[str, Any]] = Field(default_factory=list)


class ReferralRequest(BaseModel):
    relationship: str
    endorsement: str
    skills: list[str] = Field(default_factory=list)


class CreatedResponse(BaseModel):
    id: str


def _ok_or_404(ok: bool, what: str) -> dict[str, str]:
    if not ok:
        raise HTTPException(status_code=404, detail=f"{what} not found.")
    return {"status": "ok"}


def _created_or_404(entry_id: str | None, what: str) -> CreatedResponse:
    if entry_id is None:
        raise HTTPException(status_code=404, detail=f"Could not add {what}: profile not found.")
    return CreatedResponse(id=entry_id)


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


# ==========================================
# READ
# ==========================================


@router.get("/handle/{handle}", response_model=UserProfile, response_model_exclude_none=True)
async def get_profile_by_handle(handle: str, viewer_id: str | None = Depends(get_viewer_id)):
    profile = await profile_store.get_profile_by_handle(handle)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found.")
    return PrivacyFilter.filter_profile(profile, viewer_id, is_owner=viewer_id == profile.uid)


@router.get("/{uid}", response_model=UserProfile, response_model_exclude_none=True)
async def get_profile(uid: str, viewer_id: str | None = Depends(get_viewer_id)):
    profile = await profile_store.get_visible_profile(uid, viewer_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found.")
    return profile


@router.get("/{uid}/layout", response_model=list[RenderedSection])
async def get_profile_layout(uid: str, viewer_id: str | None = Depends(get_viewer_id)):
    """Ordered, render-ready sections of the profile as this viewer may see it."""
    profile = await profile_store.get_visible_profile(uid, viewer_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found.")
    return resolve_layout(profile)


@router.get("/{uid}/stats", response_model=ProfileStats)
async def get_stats(uid: str):
    stats = await profile_store.get_stats(uid)
    if stats is None:
        raise HTTPException(status_code=404, detail="Profile not found.")
    return stats


# ==========================================
# OWNER WRITES
# ==========================================


@router.put("/{uid}")
async def update_profile(uid: str, payload: dict[str, Any] = Body(...), viewer_id: str | None = Depends(get_viewer_id)):
    require_owner(uid, viewer_id)
    # Derived and keyed fields are maintained by their own operations
    for name in ("uid", "stats", "privacySettings", "sectionOrder", "customSections"):
        payload.pop(name, None)
    try:
        ok = await profile_store.upsert_profile(uid, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    if not ok:
        raise HTTPException(status_code=502, detail="Failed to update profile.")
    return {"status": "ok"}


@router.post("/{uid}/initialize")
async def initialize_profile(
    uid: str, payload: dict[str, Any] = Body(...), viewer_id: str | None = Depends(get_viewer_id)
):
    require_owner(uid, viewer_id)
    try:
        ok = await profile_store.initialize_user_profile(uid, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    if not ok:
        raise HTTPException(status_code=502, detail="Failed to initialize profile.")
    return {"status": "ok"}


@router.put("/{uid}/privacy")
async def update_privacy(uid: str, payload: dict[str, Any] = Body(...), viewer_id: str | None = Depends(get_viewer_id)):
    require_owner(uid, viewer_id)
    try:
        ok = await profile_store.update_privacy_settings(uid, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _ok_or_404(ok, "Profile")


@router.put("/{uid}/section-order")
async def update_section_order(
    uid: str, payload: list[dict[str, Any]] = Body(...), viewer_id: str | None = Depends(get_viewer_id)
):
    require_owner(uid, viewer_id)
    try:
        ok = await profile_store.update_section_order(uid, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _ok_or_404(ok, "Profile")


@router.post("/{uid}/stats/refresh", response_model=ProfileStats)
async def refresh_stats(uid: str, viewer_id: str | None = Depends(get_viewer_id)):
    require_owner(uid, viewer_id)
    if not await profile_store.update_profile_stats(uid):
        raise HTTPException(status_code=404, detail="Profile not found.")
    profile = await load_profile_or_404(uid)
    return profile.stats


# ==========================================
# RATINGS & REFERRALS
# ==========================================


@router.get("/{uid}/ratings", response_model=list[Rating], response_model_exclude_none=True)
async def list_ratings(
    uid: str,
    limit: int = Query(default=10, ge=1, le=100),
    viewer_id: str | None = Depends(get_viewer_id),
):
    profile = await load_profile_or_404(uid)
    if not PrivacyFilter.can_view(profile.privacySettings, "ratings", viewer_id, is_owner=viewer_id == uid):
        return []
    return await rating_service.list_ratings(uid, limit)


@router.post("/{uid}/ratings", status_code=201)
async def add_rating(uid: str, payload: RatingRequest, viewer_id: str | None = Depends(get_viewer_id)):
    if viewer_id is None:
        raise HTTPException(status_code=401, detail="Authentication required.")
    if viewer_id == uid:
        raise HTTPException(status_code=400, detail="You cannot rate your own profile.")
    await load_profile_or_404(uid)
    try:
        ok = await rating_service.add_rating(
            uid,
            viewer_id,
            payload.rating,
            review=payload.review,
            project_id=payload.projectId,
            project_name=payload.projectName,
            media=payload.media,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc
    if not ok:
        raise HTTPException(status_code=502, detail="Failed to store rating.")
    logger.info(f"Rating added for {redact_id(uid)}")
    return {"status": "ok"}


@router.post("/{uid}/referrals", response_model=CreatedResponse, status_code=201)
async def add_referral(uid: str, payload: ReferralRequest, viewer_id: str | None = Depends(get_viewer_id)):
    if viewer_id is None:
        raise HTTPException(status_code=401, detail="Authentication required.")
    entry_id = await profile_store.add_referral(
        uid, viewer_id, payload.relationship, payload.endorsement, payload.skills
    )
    return _created_or_404(entry_id, "referral")


@router.delete("/{uid}/referrals/{referral_id}")
async def delete_referral(uid: str, referral_id: str, viewer_id: str | None = Depends(get_viewer_id)):
    require_owner(uid, viewer_id)
    return _ok_or_404(await profile_store.delete_referral(uid, referral_id), "Referral")


# ==========================================
# RECRUITER
# ==========================================


@router.get("/{uid}/recruiter", response_model=RecruiterProfile, response_model_exclude_none=True)
async def get_recruiter_profile(uid: str):
    recruiter = await profile_store.get_recruiter_profile(uid)
    if recruiter is None:
        raise HTTPException(status_code=404, detail="Recruiter profile not found.")
    return recruiter


@router.put("/{uid}/recruiter")
async def update_recruiter_profile(
    uid: str, payload: dict[str, Any] = Body(...), viewer_id: str | None = Depends(get_viewer_id)
):
    require_owner(uid, viewer_id)
    try:
        ok = await profile_store.update_recruiter_profile(uid, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    if not ok:
        raise HTTPException(status_code=502, detail="Failed to update recruiter profile.")
    return {"status": "ok"}


# ==========================================
# PROFILE COLLECTIONS
# ==========================================

# Must stay below the named routes: /{uid}/{kind} matches any second path segment.
_ENTRY_OPERATIONS = {
    "experience": (profile_store.add_experience, profile_store.update_experience, profile_store.delete_experience),
    "education": (profile_store.add_education, profile_store.update_education, profile_store.delete_education),
    "custom-sections": (
        profile_store.add_custom_section,
        profile_store.update_custom_section,
        profile_store.delete_custom_section,
    ),
    "certifications": (profile_store.add_certification, None, profile_store.delete_certification),
}


def _operations(kind: str):
    operations = _ENTRY_OPERATIONS.get(kind)
    if operations is None:
        raise HTTPException(status_code=404, detail=f"Unknown profile collection '{kind}'.")
    return operations


@router.post("/{uid}/{kind}", response_model=CreatedResponse, status_code=201)
async def add_entry(
    uid: str, kind: str, payload: dict[str, Any] = Body(...), viewer_id: str | None = Depends(get_viewer_id)
):
    add, _, _ = _operations(kind)
    require_owner(uid, viewer_id)
    try:
        entry_id = await add(uid, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _created_or_404(entry_id, kind)


@router.patch("/{uid}/{kind}/{entry_id}")
async def update_entry(
    uid: str,
    kind: str,
    entry_id: str,
    payload: dict[str, Any] = Body(...),
    viewer_id: str | None = Depends(get_viewer_id),
):
    _, update, _ = _operations(kind)
    if update is None:
        raise HTTPException(status_code=405, detail=f"{kind} entries cannot be edited.")
    require_owner(uid, viewer_id)
    try:
        ok = await update(uid, entry_id, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _ok_or_404(ok, "Entry")


@router.delete("/{uid}/{kind}/{entry_id}")
async def delete_entry(uid: str, kind: str, entry_id: str, viewer_id: str | None = Depends(get_viewer_id)):
    _, _, delete = _operations(kind)
    require_owner(uid, viewer_id)
    return _ok_or_404(await delete(uid, entry_id), "Entry")


