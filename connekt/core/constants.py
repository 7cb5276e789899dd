"""
Core constants used across the application. Keep these simple and documented.
"""

from typing import Final

# Collections
USER_PROFILES: Final[str] = "user_profiles"
AGENCY_PROFILES: Final[str] = "agency_profiles"
RECRUITER_PROFILES: Final[str] = "recruiter_profiles"
USERS: Final[str] = "users"
USERNAMES: Final[str] = "usernames"
PROJECTS: Final[str] = "projects"
TASKS: Final[str] = "tasks"
CONTRACTS: Final[str] = "contracts"
RATINGS: Final[str] = "ratings"

# Task statuses counted as completed work
COMPLETED_TASK_STATUSES: Final[tuple[str, ...]] = ("done", "paid")

# Contract types that represent a placement
PLACEMENT_CONTRACT_TYPES: Final[tuple[str, ...]] = ("job_short_term", "job_long_term", "job_project_based")

SECONDS_PER_DAY: Final[int] = 60 * 60 * 24


def ratings_collection(uid: str) -> str:
    """Sub-collection path holding the individual ratings of a profile."""
    return f"{USER_PROFILES}/{uid}/{RATINGS}"
