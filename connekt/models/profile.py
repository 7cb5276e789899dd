from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from connekt.models.custom_sections import CustomSection

Visibility = Literal["public", "authenticated", "private"]


class PrivacySettings(BaseModel):
    """Who, besides the owner, may see each sensitive field group."""

    showEmail: Visibility = "authenticated"
    showPhone: Visibility = "private"
    showLocation: Visibility = "public"
    showExperience: Visibility = "public"
    showEducation: Visibility = "public"
    showProjects: Visibility = "public"
    showTasks: Visibility = "public"
    showRatings: Visibility = "public"
    showReferrals: Visibility = "public"
    showSocialLinks: Visibility = "public"


class ProfileStats(BaseModel):
    """Denormalized counters; averageRating/totalRatings are derived from the ratings sub-collection."""

    profileViews: int = 0
    followers: int = 0
    following: int = 0
    projectsCompleted: int = 0
    tasksCompleted: int = 0
    averageRating: float = 0
    totalRatings: int = 0
    responseRate: float = 0  # percentage
    timeOnPlatform: int = 0  # days
    hireCount: int = 0


class SocialLinks(BaseModel):
    website: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    github: str | None = None
    instagram: str | None = None
    portfolio: str | None = None


class ProfileMedia(BaseModel):
    id: str
    type: Literal["image", "video"]
    url: str
    thumbnailUrl: str | None = None
    title: str | None = None
    description: str | None = None
    size: int | None = None
    mimeType: str | None = None
    uploadedAt: datetime | None = None


class Experience(BaseModel):
    id: str
    title: str
    company: str
    location: str | None = None
    startDate: datetime | None = None
    endDate: datetime | None = None
    current: bool = False
    description: str = ""
    media: list[ProfileMedia] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)

    @property
    def effective_end(self) -> datetime | None:
        """End date used for comparisons; a current position has none."""
        return None if self.current else self.endDate


class Education(BaseModel):
    id: str
    school: str
    degree: str
    field: str
    location: str | None = None
    startDate: datetime | None = None
    endDate: datetime | None = None
    current: bool = False
    description: str | None = None
    grade: str | None = None

    @property
    def effective_end(self) -> datetime | None:
        return None if self.current else self.endDate


class Certification(BaseModel):
    id: str
    name: str
    issuer: str
    issueDate: datetime | None = None
    expiryDate: datetime | None = None
    credentialId: str | None = None
    credentialUrl: str | None = None


class Referral(BaseModel):
    id: str
    fromUserId: str
    fromUserName: str
    fromUserPhoto: str | None = None
    relationship: str
    endorsement: str
    skills: list[str] = Field(default_factory=list)
    createdAt: datetime | None = None


class ProjectReference(BaseModel):
    id: str
    title: str
    description: str = ""
    status: Literal["active", "completed", "archived"] = "active"
    role: str = ""
    startDate: datetime | None = None
    endDate: datetime | None = None
    media: list[ProfileMedia] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    isVisible: bool = True


class TaskReference(BaseModel):
    id: str
    title: str
    description: str = ""
    status: Literal["pending", "in-progress", "done", "paid"] = "pending"
    projectId: str | None = None
    projectName: str | None = None
    completedAt: datetime | None = None
    isVisible: bool = True


class SectionOrderItem(BaseModel):
    sectionId: str
    type: Literal["default", "custom"]
    order: int


DEFAULT_SECTION_IDS: tuple[str, ...] = ("about", "experience", "education", "skills", "portfolio")


def default_section_order() -> list[SectionOrderItem]:
    return [SectionOrderItem(sectionId=sid, type="default", order=i) for i, sid in enumerate(DEFAULT_SECTION_IDS)]


class UserProfile(BaseModel):
    """Extended user profile as stored in ``user_profiles/{uid}``."""

    model_config = ConfigDict(extra="allow")

    uid: str
    username: str = ""
    email: str | None = None
    displayName: str = ""
    photoURL: str | None = None
    coverImage: str | None = None
    bio: str | None = None
    title: str | None = None
    location: str | None = None
    phone: str | None = None

    role: Literal["employer", "va", "recruiter", "admin"] = "va"
    skills: list[str] = Field(default_factory=list)
    hourlyRate: float | None = None
    availability: Literal["available", "busy", "unavailable"] | None = None

    experience: list[Experience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    portfolio: list[ProfileMedia] = Field(default_factory=list)
    videoIntro: str | None = None
    customSections: list[CustomSection] = Field(default_factory=list)
    sectionOrder: list[SectionOrderItem] = Field(default_factory=default_section_order)
    referrals: list[Referral] = Field(default_factory=list)
    projects: list[ProjectReference] = Field(default_factory=list)
    tasks: list[TaskReference] = Field(default_factory=list)

    socialLinks: SocialLinks = Field(default_factory=SocialLinks)
    stats: ProfileStats = Field(default_factory=ProfileStats)
    privacySettings: PrivacySettings = Field(default_factory=PrivacySettings)

    createdAt: datetime | None = None
    updatedAt: datetime | None = None
    lastSeen: datetime | None = None


class AgencyMember(BaseModel):
    model_config = ConfigDict(extra="allow")

    userId: str
    username: str | None = None
    role: str = "member"
    status: str = "active"


class BrandingConfig(BaseModel):
    agencyId: str
    logo: str | None = None
    primaryColor: str
    secondaryColor: str
    customDomain: str | None = None
    emailTemplates: dict[str, str] | None = None


class AgencyProfile(BaseModel):
    """Extended agency profile as stored in ``agency_profiles/{id}``."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    username: str = ""  # handle
    domain: str = ""
    logoUrl: str | None = None
    coverImage: str | None = None
    description: str | None = None

    industry: str | None = None
    size: str | None = None  # e.g. "1-10", "11-50"
    location: str | None = None
    foundedYear: int | None = None
    website: str | None = None

    ownerId: str = ""
    members: list[AgencyMember] = Field(default_factory=list)

    services: list[str] = Field(default_factory=list)
    portfolio: list[ProfileMedia] = Field(default_factory=list)
    videoReel: str | None = None

    customDomain: str | None = None
    branding: BrandingConfig | None = None

    socialLinks: SocialLinks = Field(default_factory=SocialLinks)
    stats: ProfileStats = Field(default_factory=ProfileStats)
    privacySettings: PrivacySettings = Field(default_factory=PrivacySettings)

    createdAt: datetime | None = None
    updatedAt: datetime | None = None


class RecruiterProfile(BaseModel):
    """Recruiter profile as stored in ``recruiter_profiles/{uid}``."""

    model_config = ConfigDict(extra="allow")

    uid: str
    username: str = ""
    displayName: str = ""
    photoURL: str | None = None
    coverImage: str | None = None
    bio: str | None = None

    specializations: list[str] = Field(default_factory=list)
    placementsCount: int = 0
    averageResponseTime: float = 0  # hours

    stats: ProfileStats = Field(default_factory=ProfileStats)
    socialLinks: SocialLinks = Field(default_factory=SocialLinks)
    privacySettings: PrivacySettings = Field(default_factory=PrivacySettings)

    createdAt: datetime | None = None
    updatedAt: datetime | None = None


def dump_document(model: BaseModel, **kwargs: Any) -> dict[str, Any]:
    """Serialize a model into the JSON-safe dict shape written to the document store."""
    return model.model_dump(mode="json", exclude_none=True, **kwargs)
