from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

CustomSectionType = Literal["text", "media_gallery", "links", "achievements", "testimonials", "timeline", "stats"]
SectionVisibility = Literal["public", "authenticated", "private"]


class SectionMedia(BaseModel):
    id: str
    type: Literal["image", "video"]
    url: str
    thumbnailUrl: str | None = None
    title: str | None = None
    description: str | None = None


class SectionLink(BaseModel):
    id: str
    title: str
    url: str
    description: str | None = None
    icon: str | None = None


class Achievement(BaseModel):
    id: str
    title: str
    description: str = ""
    date: datetime | None = None
    icon: str | None = None
    imageUrl: str | None = None


class Testimonial(BaseModel):
    id: str
    authorName: str
    authorRole: str | None = None
    authorPhoto: str | None = None
    content: str
    rating: int | None = Field(default=None, ge=1, le=5)
    date: datetime | None = None


class TimelineEvent(BaseModel):
    id: str
    title: str
    description: str = ""
    date: datetime | None = None
    media: SectionMedia | None = None


class CustomStat(BaseModel):
    id: str
    label: str
    value: str | float
    icon: str | None = None
    color: str | None = None


class CustomSectionContent(BaseModel):
    """Payload of a custom section; only the field matching the section type is used."""

    richText: str | None = None  # text
    media: list[SectionMedia] | None = None  # media_gallery
    links: list[SectionLink] | None = None  # links
    achievements: list[Achievement] | None = None  # achievements
    testimonials: list[Testimonial] | None = None  # testimonials
    timelineEvents: list[TimelineEvent] | None = None  # timeline
    stats: list[CustomStat] | None = None  # stats


class CustomSection(BaseModel):
    id: str
    type: CustomSectionType
    title: str
    description: str | None = None
    visibility: SectionVisibility = "public"
    order: int = 0
    content: CustomSectionContent = Field(default_factory=CustomSectionContent)
    createdAt: datetime | None = None
    updatedAt: datetime | None = None
