from datetime import datetime, timezone

from connekt.models.custom_sections import CustomSection, CustomSectionContent, TimelineEvent
from connekt.models.profile import Experience, SectionOrderItem, UserProfile
from connekt.services.profile.layout import resolve_layout


def _dt(year: int) -> datetime:
    return datetime(year, 1, 1, tzinfo=timezone.utc)


def test_default_layout_follows_default_order():
    profile = UserProfile(uid="u1", bio="Hi", skills=["sql"])

    layout = resolve_layout(profile)

    assert [s.sectionId for s in layout] == ["about", "experience", "education", "skills", "portfolio"]
    assert [s.position for s in layout] == [0, 1, 2, 3, 4]
    assert layout[0].payload["bio"] == "Hi"
    assert layout[3].payload == {"skills": ["sql"]}


def test_custom_order_and_custom_sections():
    section = CustomSection(
        id="section_1", type="text", title="Story", content=CustomSectionContent(richText="Once upon a time")
    )
    profile = UserProfile(
        uid="u1",
        customSections=[section],
        sectionOrder=[
            SectionOrderItem(sectionId="skills", type="default", order=2),
            SectionOrderItem(sectionId="section_1", type="custom", order=0),
            SectionOrderItem(sectionId="about", type="default", order=1),
        ],
    )

    layout = resolve_layout(profile)

    assert [(s.sectionId, s.kind) for s in layout] == [
        ("section_1", "custom"),
        ("about", "default"),
        ("skills", "default"),
    ]
    assert layout[0].type == "text"
    assert layout[0].title == "Story"
    assert layout[0].payload == {"richText": "Once upon a time"}


def test_dangling_order_entries_are_skipped():
    profile = UserProfile(
        uid="u1",
        sectionOrder=[
            SectionOrderItem(sectionId="section_gone", type="custom", order=0),
            SectionOrderItem(sectionId="unknown", type="default", order=1),
            SectionOrderItem(sectionId="about", type="default", order=2),
        ],
    )

    assert [s.sectionId for s in resolve_layout(profile)] == ["about"]


def test_unordered_custom_sections_are_appended():
    profile = UserProfile(
        uid="u1",
        customSections=[CustomSection(id="section_9", type="stats", title="Numbers")],
        sectionOrder=[SectionOrderItem(sectionId="about", type="default", order=0)],
    )

    layout = resolve_layout(profile)

    assert [s.sectionId for s in layout] == ["about", "section_9"]
    assert layout[1].payload == {"stats": []}


def test_experience_renders_current_roles_first():
    profile = UserProfile(
        uid="u1",
        experience=[
            Experience(id="old", title="A", company="X", endDate=_dt(2018)),
            Experience(id="now", title="B", company="Y", current=True, endDate=_dt(2010)),
            Experience(id="recent", title="C", company="Z", endDate=_dt(2022)),
        ],
    )

    experience = next(s for s in resolve_layout(profile) if s.sectionId == "experience")

    assert [e["id"] for e in experience.payload["entries"]] == ["now", "recent", "old"]


def test_timeline_events_are_chronological():
    section = CustomSection(
        id="section_t",
        type="timeline",
        title="Journey",
        content=CustomSectionContent(
            timelineEvents=[
                TimelineEvent(id="b", title="Later", date=_dt(2023)),
                TimelineEvent(id="a", title="Earlier", date=_dt(2019)),
            ]
        ),
    )
    profile = UserProfile(uid="u1", customSections=[section], sectionOrder=[])

    [rendered] = [s for s in resolve_layout(profile) if s.kind == "custom"]

    assert [e["id"] for e in rendered.payload["timelineEvents"]] == ["a", "b"]
