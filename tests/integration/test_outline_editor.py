"""Integration tests for outlines and the section editor."""
import pytest

from contentflow.errors import NotAuthorized, NotFoundError, ValidationError
from contentflow.models import OutlineStatus, PillarStatus, SubpillarStatus
from contentflow.schemas import OutlineSectionIn
from contentflow.services.outlines import OutlineService

OWNER = "user-1"
OTHER = "user-2"


def section(title, order_index, points=()):
    return OutlineSectionIn(
        title=title,
        order_index=order_index,
        content_points=[{"point": p, "generated": False} for p in points],
    )


def stripped(outline):
    return [
        {"title": s.title, "order_index": s.order_index, "content_points": s.content_points, "content": s.content}
        for s in outline.sections
    ]


@pytest.fixture
def outlines(store):
    return OutlineService(store)


@pytest.fixture
async def subpillar(store):
    niche = await store.create_niche(name="SEO Basics", user_id=OWNER, pillars=[], progress=0)
    (pillar,) = await store.create_pillars(
        [{"title": "On-Page SEO", "niche_id": niche.id, "created_by_id": OWNER, "status": PillarStatus.approved}]
    )
    (sub,) = await store.create_subpillars(
        [{"title": "Title Tags", "pillar_id": pillar.id, "created_by_id": OWNER, "status": SubpillarStatus.draft}]
    )
    return sub


@pytest.fixture
async def outline(outlines, subpillar):
    return await outlines.create(subpillar.id, OWNER, [section("Intro", 0, ["hook"]), section("Body", 1)])


async def test_create_starts_as_draft(outline, subpillar):
    assert outline.status == OutlineStatus.draft
    assert outline.subpillar_id == subpillar.id
    assert [s.title for s in outline.sections] == ["Intro", "Body"]


async def test_one_outline_per_subpillar(outlines, outline, subpillar):
    with pytest.raises(ValidationError, match="Outline already exists for this subpillar"):
        await outlines.create(subpillar.id, OWNER)


async def test_create_requires_subpillar(outlines):
    with pytest.raises(NotFoundError):
        await outlines.create("missing", OWNER)


async def test_ordering_round_trip(outlines, outline):
    written = [section("Second", 1, ["b"]), section("First", 0, ["a"]), section("Third", 2)]
    updated = await outlines.replace_all_sections(outline.id, OWNER, written)

    expected = sorted((s.model_dump() for s in written), key=lambda s: s["order_index"])
    assert stripped(updated) == expected
    assert stripped(await outlines.get(outline.id)) == expected


async def test_replace_all_can_empty_the_list(outlines, outline):
    updated = await outlines.replace_all_sections(outline.id, OWNER, [])
    assert updated.sections == []


async def test_add_section_appends(outlines, outline):
    updated = await outlines.add_section(outline.id, OWNER, section("Conclusion", 2))
    assert [s.title for s in updated.sections] == ["Intro", "Body", "Conclusion"]


async def test_update_section_in_place(outlines, outline):
    updated = await outlines.update_section(outline.id, OWNER, 1, section("Main Body", 1, ["x", "y"]))
    assert len(updated.sections) == 2
    assert updated.sections[1].title == "Main Body"
    assert [p["point"] for p in updated.sections[1].content_points] == ["x", "y"]


async def test_duplicate_order_index_keeps_insertion_order(outlines, outline):
    await outlines.add_section(outline.id, OWNER, section("Sidebar", 1))
    await outlines.add_section(outline.id, OWNER, section("Footnote", 1))
    assert [s.title for s in (await outlines.get(outline.id)).sections] == ["Intro", "Body", "Sidebar", "Footnote"]

    # every read resolves index 2 to the same row
    updated = await outlines.update_section(outline.id, OWNER, 2, section("Callout", 1))
    assert [s.title for s in updated.sections] == ["Intro", "Body", "Callout", "Footnote"]
    assert [s.title for s in (await outlines.get(outline.id)).sections] == ["Intro", "Body", "Callout", "Footnote"]


@pytest.mark.parametrize("index", [-1, 2, 99])
async def test_update_section_bounds(outlines, outline, index):
    before = stripped(await outlines.get(outline.id))
    with pytest.raises(ValidationError, match="Invalid section index"):
        await outlines.update_section(outline.id, OWNER, index, section("Nope", 0))
    assert stripped(await outlines.get(outline.id)) == before


async def test_status_is_permissive(outlines, outline):
    approved = await outlines.update_status(outline.id, OWNER, OutlineStatus.approved)
    assert approved.status == OutlineStatus.approved
    back = await outlines.update_status(outline.id, OWNER, OutlineStatus.draft)
    assert back.status == OutlineStatus.draft


async def test_non_owner_cannot_mutate(outlines, outline):
    before = stripped(outline)
    for call in (
        outlines.replace_all_sections(outline.id, OTHER, []),
        outlines.add_section(outline.id, OTHER, section("x", 5)),
        outlines.update_section(outline.id, OTHER, 0, section("x", 0)),
        outlines.update_status(outline.id, OTHER, OutlineStatus.approved),
        outlines.delete(outline.id, OTHER),
    ):
        with pytest.raises(NotAuthorized):
            await call
    current = await outlines.get(outline.id)
    assert stripped(current) == before
    assert current.status == OutlineStatus.draft


async def test_delete_removes_sections(store, outlines, outline, subpillar):
    assert await outlines.delete(outline.id, OWNER) is True
    with pytest.raises(NotFoundError):
        await outlines.get(outline.id)
    with pytest.raises(NotFoundError):
        await outlines.get_by_subpillar(subpillar.id)
    # a fresh outline can now be created for the same subpillar
    again = await outlines.create(subpillar.id, OWNER)
    assert again.sections == []
