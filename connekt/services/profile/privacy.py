from typing import Any, Final

from connekt.models.profile import PrivacySettings, UserProfile

# Sensitive field groups: privacy setting name -> profile fields it hides.
# Everything not listed here (display name, title, skills, stats, ...) is always visible.
GUARDED_GROUPS: Final[dict[str, tuple[str, tuple[str, ...]]]] = {
    "email": ("showEmail", ("email",)),
    "phone": ("showPhone", ("phone",)),
    "location": ("showLocation", ("location",)),
    "experience": ("showExperience", ("experience",)),
    "education": ("showEducation", ("education",)),
    "projects": ("showProjects", ("projects",)),
    "tasks": ("showTasks", ("tasks",)),
    "ratings": ("showRatings", ()),
    "referrals": ("showReferrals", ("referrals",)),
    "socialLinks": ("showSocialLinks", ("socialLinks",)),
}

# Sentinels written in place of hidden fields
_HIDDEN_VALUES: Final[dict[str, Any]] = {
    "email": None,
    "phone": None,
    "location": None,
    "experience": [],
    "education": [],
    "projects": [],
    "tasks": [],
    "referrals": [],
    "socialLinks": {},
}


class PrivacyFilter:
    """
    Produces viewer-scoped projections of a profile.

    Allow by default, deny by exception: only the groups in GUARDED_GROUPS are
    ever hidden. The owner always sees everything.
    """

    @staticmethod
    def is_visible(visibility: str, viewer_id: str | None, is_owner: bool) -> bool:
        """Apply the visibility rule for one tagged field group or section."""
        if is_owner:
            return True
        if visibility == "public":
            return True
        if visibility == "authenticated":
            return viewer_id is not None
        return False

    @staticmethod
    def can_view(settings: PrivacySettings, group: str, viewer_id: str | None, is_owner: bool) -> bool:
        """Whether ``group`` (e.g. ``"ratings"``) is visible to this viewer."""
        setting_name, _ = GUARDED_GROUPS[group]
        return PrivacyFilter.is_visible(getattr(settings, setting_name), viewer_id, is_owner)

    @staticmethod
    def filter_profile(profile: UserProfile, viewer_id: str | None, is_owner: bool) -> UserProfile:
        """
        Return a redacted copy of ``profile`` for the given viewer.

        Args:
            profile: The full profile; never mutated
            viewer_id: Authenticated viewer uid, or None for anonymous viewers
            is_owner: Whether the viewer owns the profile

        Returns:
            A new UserProfile of the same shape with hidden groups emptied
        """
        if is_owner:
            return profile.model_copy(deep=True)

        updates: dict[str, Any] = {}
        for group, (_, fields) in GUARDED_GROUPS.items():
            if PrivacyFilter.can_view(profile.privacySettings, group, viewer_id, is_owner):
                continue
            for name in fields:
                updates[name] = _HIDDEN_VALUES[name]

        updates["customSections"] = [
            section
            for section in profile.customSections
            if PrivacyFilter.is_visible(section.visibility, viewer_id, is_owner)
        ]

        # Re-validate so hidden sentinels take their model types (e.g. SocialLinks)
        data = profile.model_dump()
        data.update(updates)
        data["customSections"] = [section.model_dump() for section in updates["customSections"]]
        return UserProfile.model_validate(data)

    @staticmethod
    def filter_profiles(profiles: list[UserProfile], viewer_id: str | None) -> list[UserProfile]:
        """Redact a list of profiles (search results) for one viewer."""
        return [PrivacyFilter.filter_profile(p, viewer_id, is_owner=viewer_id == p.uid) for p in profiles]
