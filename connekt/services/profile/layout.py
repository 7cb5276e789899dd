"""
Profile layout: turns the owner-controlled section order into an ordered list
of typed, render-ready sections.

Built-in sections and every custom section type have one renderer registered
in a table keyed by the section tag; the section order drives which renderer
runs and in what position.
"""

from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, Field

from connekt.models.custom_sections import CustomSection, CustomSectionType
from connekt.models.profile import UserProfile, default_section_order

SectionRenderer = Callable[[UserProfile], dict[str, Any]]
CustomSectionRenderer = Callable[[CustomSection], dict[str, Any]]

DEFAULT_SECTION_TITLES: dict[str, str] = {
    "about": "About",
    "experience": "Work Experience",
    "education": "Education",
    "skills": "Skills",
    "portfolio": "Portfolio",
    "projects": "Projects",
    "tasks": "Tasks",
}

_DEFAULT_RENDERERS: dict[str, SectionRenderer] = {}
_CUSTOM_RENDERERS: dict[str, CustomSectionRenderer] = {}


class RenderedSection(BaseModel):
    sectionId: str
    kind: Literal["default", "custom"]
    type: str
    title: str
    position: int
    payload: dict[str, Any] = Field(default_factory=dict)


def default_renderer(section_id: str) -> Callable[[SectionRenderer], SectionRenderer]:
    def register(func: SectionRenderer) -> SectionRenderer:
        _DEFAULT_RENDERERS[section_id] = func
        return func

    return register


def custom_renderer(section_type: CustomSectionType) -> Callable[[CustomSectionRenderer], CustomSectionRenderer]:
    def register(func: CustomSectionRenderer) -> CustomSectionRenderer:
        _CUSTOM_RENDERERS[section_type] = func
        return func

    return register


def _dump_all(items: list[BaseModel] | None) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json", exclude_none=True) for item in items or []]


# Built-in sections


@default_renderer("about")
def _render_about(profile: UserProfile) -> dict[str, Any]:
    return {"bio": profile.bio, "title": profile.title, "videoIntro": profile.videoIntro}


@default_renderer("experience")
def _render_experience(profile: UserProfile) -> dict[str, Any]:
    # Current positions first, then by most recent end date
    def sort_key(exp):
        end = exp.effective_end
        return (exp.current, end.timestamp() if end else 0)

    ordered = sorted(profile.experience, key=sort_key, reverse=True)
    return {"entries": _dump_all(ordered)}


@default_renderer("education")
def _render_education(profile: UserProfile) -> dict[str, Any]:
    return {"entries": _dump_all(profile.education), "certifications": _dump_all(profile.certifications)}


@default_renderer("skills")
def _render_skills(profile: UserProfile) -> dict[str, Any]:
    return {"skills": list(profile.skills)}


@default_renderer("portfolio")
def _render_portfolio(profile: UserProfile) -> dict[str, Any]:
    return {"media": _dump_all(profile.portfolio)}


@default_renderer("projects")
def _render_projects(profile: UserProfile) -> dict[str, Any]:
    return {"projects": _dump_all([p for p in profile.projects if p.isVisible])}


@default_renderer("tasks")
def _render_tasks(profile: UserProfile) -> dict[str, Any]:
    return {"tasks": _dump_all([t for t in profile.tasks if t.isVisible])}


# Custom sections


@custom_renderer("text")
def _render_text(section: CustomSection) -> dict[str, Any]:
    return {"richText": section.content.richText or ""}


@custom_renderer("media_gallery")
def _render_media_gallery(section: CustomSection) -> dict[str, Any]:
    return {"media": _dump_all(section.content.media)}


@custom_renderer("links")
def _render_links(section: CustomSection) -> dict[str, Any]:
    return {"links": _dump_all(section.content.links)}


@custom_renderer("achievements")
def _render_achievements(section: CustomSection) -> dict[str, Any]:
    return {"achievements": _dump_all(section.content.achievements)}


@custom_renderer("testimonials")
def _render_testimonials(section: CustomSection) -> dict[str, Any]:
    return {"testimonials": _dump_all(section.content.testimonials)}


@custom_renderer("timeline")
def _render_timeline(section: CustomSection) -> dict[str, Any]:
    events = sorted(
        section.content.timelineEvents or [],
        key=lambda event: event.date.timestamp() if event.date else 0,
    )
    return {"timelineEvents": _dump_all(events)}


@custom_renderer("stats")
def _render_stats(section: CustomSection) -> dict[str, Any]:
    return {"stats": _dump_all(section.content.stats)}


def resolve_layout(profile: UserProfile) -> list[RenderedSection]:
    """
    Build the ordered sections of a profile.

    Entries in the section order that no longer resolve (a deleted or hidden
    custom section, an unknown built-in id) are skipped. Custom sections that
    are missing from the order are appended after the ordered ones.
    """
    order = sorted(profile.sectionOrder or default_section_order(), key=lambda item: item.order)
    customs = {section.id: section for section in profile.customSections}
    placed: set[str] = set()
    rendered: list[RenderedSection] = []

    def add(section_id: str, kind: str, section_type: str, title: str, payload: dict[str, Any]) -> None:
        placed.add(section_id)
        rendered.append(
            RenderedSection(
                sectionId=section_id,
                kind=kind,
                type=section_type,
                title=title,
                position=len(rendered),
                payload=payload,
            )
        )

    for item in order:
        if item.sectionId in placed:
            continue
        if item.type == "default":
            renderer = _DEFAULT_RENDERERS.get(item.sectionId)
            if renderer is None:
                continue
            add(item.sectionId, "default", item.sectionId, DEFAULT_SECTION_TITLES[item.sectionId], renderer(profile))
        else:
            section = customs.get(item.sectionId)
            if section is None:
                continue
            add(section.id, "custom", section.type, section.title, _CUSTOM_RENDERERS[section.type](section))

    for section in sorted(profile.customSections, key=lambda s: s.order):
        if section.id not in placed:
            add(section.id, "custom", section.type, section.title, _CUSTOM_RENDERERS[section.type](section))

    return rendered
