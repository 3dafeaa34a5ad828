"""
Integration tests for outline and content-point generation.

Outline sections come from the subpillar's research; content points fill
one section at a time. Both are recorded in the ledger as outline work.
"""
import pytest

from contentflow.errors import AIServiceError, NotAuthorized, NotFoundError, ValidationError
from contentflow.models import ContentType, GenerationStatus, PillarStatus, SubpillarStatus
from contentflow.schemas import OutlineSectionIn
from contentflow.services.content import ResearchService
from contentflow.services.outlines import OutlineService

OWNER = "user-1"
OTHER = "user-2"

FOUR_SECTIONS = "Outline:\n1. Why Title Tags Matter\n2. Length Limits\n3. Keyword Placement\n4. Common Mistakes"
POINTS = "- Google truncates titles near 60 characters\n\n• Front-load the primary keyword\n3. Keep every title unique"


@pytest.fixture
async def subpillar(store):
    niche = await store.create_niche(name="SEO Basics", user_id=OWNER, pillars=[], progress=0)
    (pillar,) = await store.create_pillars(
        [{"title": "On-Page SEO", "niche_id": niche.id, "created_by_id": OWNER, "status": PillarStatus.approved}]
    )
    (sub,) = await store.create_subpillars(
        [{"title": "Title Tags", "pillar_id": pillar.id, "created_by_id": OWNER, "status": SubpillarStatus.research}]
    )
    return sub


@pytest.fixture
async def researched(store, subpillar):
    research = ResearchService(store)
    await research.create(subpillar.id, OWNER, content="Titles over 60 chars get cut off", source="https://moz.com",
                          relevance=0.9)
    await research.create(subpillar.id, OWNER, content="Keywords early rank better", source="https://ahrefs.com",
                          relevance=0.6)
    return subpillar


@pytest.fixture
async def outline(workflow, fake_llm, researched):
    fake_llm.script(FOUR_SECTIONS)
    return await workflow.generate_outline(researched.id, OWNER)


# ============================================================================
# Outline generation
# ============================================================================


async def test_outline_needs_research(workflow, fake_llm, subpillar):
    with pytest.raises(ValidationError, match="No research found for this subpillar"):
        await workflow.generate_outline(subpillar.id, OWNER)
    assert fake_llm.calls == []


async def test_outline_sections_follow_numbered_lines(outline, fake_llm):
    assert [s.title for s in outline.sections] == [
        "Why Title Tags Matter",
        "Length Limits",
        "Keyword Placement",
        "Common Mistakes",
    ]
    assert [s.order_index for s in outline.sections] == [0, 1, 2, 3]
    assert all(s.content_points == [] for s in outline.sections)
    assert outline.created_by_id == OWNER

    prompt = fake_llm.calls[-1]["prompt"]
    assert "Source: https://moz.com\nContent: Titles over 60 chars get cut off" in prompt
    assert "4-6 main sections" in prompt


async def test_outline_generation_is_recorded(ledger, outline, researched):
    (attempt,) = await ledger.history(researched.id)
    assert attempt.content_type == ContentType.outline
    assert attempt.status == GenerationStatus.completed
    assert attempt.metadata["result"] == {"createdIds": [outline.id], "count": 4}


async def test_regenerating_replaces_sections(workflow, fake_llm, outline, researched):
    fake_llm.script("1. Title Tag Basics\n2. Testing Titles")
    again = await workflow.generate_outline(researched.id, OWNER)

    assert again.id == outline.id
    assert [s.title for s in again.sections] == ["Title Tag Basics", "Testing Titles"]


async def test_unparseable_outline_persists_nothing(store, ledger, workflow, fake_llm, researched):
    fake_llm.script("Sorry, I need more context.")

    with pytest.raises(ValidationError, match="Failed to generate valid outline sections"):
        await workflow.generate_outline(researched.id, OWNER)

    assert await store.find_outline_by_subpillar(researched.id) is None
    (attempt,) = await ledger.history(researched.id)
    assert attempt.status == GenerationStatus.failed


async def test_outline_generation_is_owner_only(workflow, fake_llm, researched):
    with pytest.raises(NotAuthorized):
        await workflow.generate_outline(researched.id, OTHER)
    assert fake_llm.calls == []


async def test_outline_for_missing_subpillar(workflow):
    with pytest.raises(NotFoundError, match="Subpillar not found"):
        await workflow.generate_outline("missing", OWNER)


# ============================================================================
# Content points
# ============================================================================


async def test_content_points_fill_one_section(workflow, fake_llm, outline):
    fake_llm.script(POINTS)
    updated = await workflow.generate_content_points(outline.id, 1, OWNER)

    assert updated.sections[1].content_points == [
        {"point": "Google truncates titles near 60 characters", "generated": True},
        {"point": "Front-load the primary keyword", "generated": True},
        {"point": "Keep every title unique", "generated": True},
    ]
    assert [s.content_points for i, s in enumerate(updated.sections) if i != 1] == [[], [], []]
    assert [s.title for s in updated.sections] == [s.title for s in outline.sections]
    assert '"Length Limits"' in fake_llm.calls[-1]["prompt"]


async def test_content_points_are_recorded_against_outline(ledger, workflow, fake_llm, outline):
    fake_llm.script(POINTS)
    await workflow.generate_content_points(outline.id, 0, OWNER)

    (attempt,) = await ledger.history(outline.id)
    assert attempt.content_type == ContentType.outline
    assert attempt.status == GenerationStatus.completed
    assert attempt.metadata["result"] == {"sectionIndex": 0, "count": 3}


@pytest.mark.parametrize("index", [-1, 4])
async def test_content_points_reject_bad_index(workflow, fake_llm, outline, index):
    calls_before = len(fake_llm.calls)
    with pytest.raises(ValidationError, match="Invalid section index"):
        await workflow.generate_content_points(outline.id, index, OWNER)
    assert len(fake_llm.calls) == calls_before


async def test_content_points_model_failure_leaves_section(ledger, workflow, fake_llm, outline):
    fake_llm.script(AIServiceError("model not loaded"))
    with pytest.raises(AIServiceError):
        await workflow.generate_content_points(outline.id, 2, OWNER)

    (attempt,) = await ledger.history(outline.id)
    assert attempt.status == GenerationStatus.failed
    assert attempt.error == "model not loaded"


async def test_content_points_need_research(store, workflow, subpillar):
    outline = await OutlineService(store).create(subpillar.id, OWNER, [OutlineSectionIn(title="Intro", order_index=0)])
    with pytest.raises(ValidationError, match="No research found"):
        await workflow.generate_content_points(outline.id, 0, OWNER)


async def test_content_points_are_owner_only(workflow, outline):
    with pytest.raises(NotAuthorized):
        await workflow.generate_content_points(outline.id, 0, OTHER)
