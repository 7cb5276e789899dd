"""
Profile System - canonical records, viewer-scoped projections and ratings.

Profiles are stored whole; visibility is decided at read time by the privacy
filter and never written back.
"""

from connekt.services.profile.layout import RenderedSection, resolve_layout
from connekt.services.profile.media import MediaUpload, ProfileMediaService, profile_media_service
from connekt.services.profile.privacy import PrivacyFilter
from connekt.services.profile.ratings import RatingService, rating_service, validate_rating
from connekt.services.profile.store import ProfileStore, merge_profile_sources, profile_store

__all__ = [
    "ProfileStore",
    "PrivacyFilter",
    "RatingService",
    "ProfileMediaService",
    "MediaUpload",
    "RenderedSection",
    "merge_profile_sources",
    "resolve_layout",
    "validate_rating",
    "profile_store",
    "rating_service",
    "profile_media_service",
]
