from typing import Annotated

from fastapi import Header, HTTPException

from connekt.models.profile import UserProfile
from connekt.services.profile.store import profile_store


async def get_viewer_id(x_viewer_id: Annotated[str | None, Header()] = None) -> str | None:
    """Authenticated viewer uid forwarded by the auth layer; None for anonymous requests."""
    viewer_id = (x_viewer_id or "").strip()
    return viewer_id or None


def require_owner(uid: str, viewer_id: str | None) -> str:
    if viewer_id is None:
        raise HTTPException(status_code=401, detail="Authentication required.")
    if viewer_id != uid:
        raise HTTPException(status_code=403, detail="Only the profile owner can change this profile.")
    return viewer_id


async def load_profile_or_404(uid: str) -> UserProfile:
    profile = await profile_store.get_profile(uid)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found.")
    return profile
