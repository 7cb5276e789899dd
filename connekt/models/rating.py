from datetime import datetime

from pydantic import BaseModel, Field

from connekt.models.profile import ProfileMedia


class Rating(BaseModel):
    """An immutable review record in ``user_profiles/{uid}/ratings``.

    The rater's name and photo are a snapshot taken when the rating was
    written; later profile changes do not flow back into old ratings.
    """

    id: str
    fromUserId: str
    fromUserName: str
    fromUserPhoto: str | None = None
    rating: int = Field(ge=1, le=5)
    review: str | None = None
    projectId: str | None = None
    projectName: str | None = None
    media: list[ProfileMedia] = Field(default_factory=list)
    createdAt: datetime
