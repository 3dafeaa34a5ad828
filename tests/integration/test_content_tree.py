"""
Integration tests for the niche/pillar/subpillar services, research and
articles: ownership, summary bookkeeping and cascade deletes.
"""
import pytest

from contentflow.errors import NotAuthorized, NotFoundError, ValidationError
from contentflow.models import (
    ArticleStatus,
    ContentType,
    NicheStatus,
    PillarStatus,
    SubpillarStatus,
)
from contentflow.schemas import GenerationRequest, OutlineSectionIn
from contentflow.services.content import ArticleService, ResearchService
from contentflow.services.niches import NicheService
from contentflow.services.outlines import OutlineService
from contentflow.services.pillars import PillarService
from contentflow.services.subpillars import SubpillarService

OWNER = "user-1"
OTHER = "user-2"


@pytest.fixture
def services(store):
    class Services:
        niches = NicheService(store)
        pillars = PillarService(store)
        subpillars = SubpillarService(store)
        outlines = OutlineService(store)
        research = ResearchService(store)
        articles = ArticleService(store)

    return Services


@pytest.fixture
async def tree(store, services):
    niche = await services.niches.create(OWNER, "SEO Basics")
    pillar = await services.pillars.create(niche.id, OWNER, "On-Page SEO")
    await services.pillars.approve(pillar.id, OWNER)
    (sub,) = await store.create_subpillars(
        [{"title": "Title Tags", "pillar_id": pillar.id, "created_by_id": OWNER, "status": SubpillarStatus.draft}]
    )
    return niche, pillar, sub


# ============================================================================
# Niches
# ============================================================================


async def test_niches_are_listed_per_user(services):
    await services.niches.create(OWNER, "SEO Basics")
    await services.niches.create(OTHER, "Baking")
    assert [n.name for n in await services.niches.list(OWNER)] == ["SEO Basics"]


async def test_niche_status_follows_transition_table(services):
    niche = await services.niches.create(OWNER, "SEO Basics")
    with pytest.raises(ValidationError, match="Cannot change niche status from pending to approved"):
        await services.niches.set_status(niche.id, OWNER, NicheStatus.approved)

    niche = await services.niches.set_status(niche.id, OWNER, NicheStatus.rejected)
    niche = await services.niches.set_status(niche.id, OWNER, NicheStatus.pending)
    assert niche.status == NicheStatus.pending


async def test_niche_update_renames_and_moves_status(services):
    niche = await services.niches.create(OWNER, "SEO Basics")
    niche = await services.niches.update(niche.id, OWNER, name="  Technical SEO ", status=NicheStatus.rejected)
    assert niche.name == "Technical SEO"
    assert niche.status == NicheStatus.rejected
    with pytest.raises(ValidationError):
        await services.niches.update(niche.id, OWNER, status=NicheStatus.approved)


async def test_niche_is_private_to_owner(services):
    niche = await services.niches.create(OWNER, "SEO Basics")
    with pytest.raises(NotAuthorized):
        await services.niches.get(niche.id, OTHER)
    with pytest.raises(NotAuthorized):
        await services.niches.update(niche.id, OTHER, name="Hijacked")
    assert (await services.niches.get(niche.id, OWNER)).name == "SEO Basics"


# ============================================================================
# Pillars and the denormalized summary
# ============================================================================


async def test_manual_pillar_joins_summary(store, tree):
    niche, pillar, _ = tree
    refreshed = await store.find_niche(niche.id)
    assert refreshed.pillars == [{"title": "On-Page SEO", "status": "approved", "approved": True}]
    assert refreshed.progress == 100


async def test_approve_twice_fails(services, tree):
    _, pillar, _ = tree
    with pytest.raises(ValidationError, match="Pillar is already approved"):
        await services.pillars.approve(pillar.id, OWNER)


async def test_rename_keeps_summary_in_step(store, services, tree):
    niche, pillar, _ = tree
    await services.pillars.update(pillar.id, OWNER, title="On-Page Optimisation")
    refreshed = await store.find_niche(niche.id)
    assert refreshed.pillars[0]["title"] == "On-Page Optimisation"
    assert await services.pillars.summary_drift(niche.id) == {
        "missing_from_summary": [],
        "missing_from_table": [],
        "status_mismatch": [],
    }


async def test_pillar_delete_leaves_summary_drift(services, tree):
    niche, pillar, _ = tree
    await services.pillars.delete(pillar.id, OWNER)
    drift = await services.pillars.summary_drift(niche.id)
    assert drift["missing_from_table"] == ["On-Page SEO"]


async def test_pillar_rejects_bad_transition(services, tree):
    _, pillar, _ = tree
    with pytest.raises(ValidationError):
        await services.pillars.update(pillar.id, OWNER, status=PillarStatus.rejected)


# ============================================================================
# Ownership invariant
# ============================================================================


async def test_non_owner_mutations_leave_entities_unchanged(store, services, tree):
    niche, pillar, sub = tree
    outline = await services.outlines.create(sub.id, OWNER, [OutlineSectionIn(title="Intro", order_index=0)])
    research = await services.research.create(sub.id, OWNER, content="Stats", source="https://example.org")
    article = await services.articles.create(sub.id, OWNER, title="Title Tags 101")

    attempts = [
        services.pillars.update(pillar.id, OTHER, title="x"),
        services.pillars.approve(pillar.id, OTHER),
        services.pillars.delete(pillar.id, OTHER),
        services.subpillars.update(sub.id, OTHER, status="research"),
        services.subpillars.delete(sub.id, OTHER),
        services.outlines.delete(outline.id, OTHER),
        services.research.update(research.id, OTHER, notes="x"),
        services.research.delete(research.id, OTHER),
        services.articles.update(article.id, OTHER, title="x"),
        services.articles.update_seo(article.id, OTHER, seo_score=10),
        services.articles.delete(article.id, OTHER),
        services.niches.delete(niche.id, OTHER),
    ]
    for attempt in attempts:
        with pytest.raises(NotAuthorized):
            await attempt

    assert (await store.find_pillar(pillar.id)).title == "On-Page SEO"
    assert (await store.find_subpillar(sub.id)).status == SubpillarStatus.draft
    assert (await store.find_research(research.id)).notes is None
    assert (await store.find_article(article.id)).seo_score is None
    assert await store.find_outline(outline.id) is not None


# ============================================================================
# Subpillars, research, articles
# ============================================================================


async def test_subpillar_status_update(services, tree):
    _, _, sub = tree
    updated = await services.subpillars.update(sub.id, OWNER, status="outline")
    assert updated.status == SubpillarStatus.outline
    with pytest.raises(ValidationError, match="legacy"):
        await services.subpillars.update(sub.id, OWNER, status="archived")


async def test_research_ordered_by_relevance(services, tree):
    _, _, sub = tree
    await services.research.create(sub.id, OWNER, content="low", source="a", relevance=0.2)
    await services.research.create(sub.id, OWNER, content="high", source="b", relevance=0.9)
    assert [r.content for r in await services.research.list_by_subpillar(sub.id)] == ["high", "low"]


async def test_research_link_must_exist(services, tree):
    _, _, sub = tree
    with pytest.raises(ValidationError):
        await services.research.create(sub.id, OWNER, content="c", source="s", article_id="missing")


async def test_article_seo_update(services, tree):
    _, _, sub = tree
    article = await services.articles.create(sub.id, OWNER, title="Title Tags 101")
    assert article.status == ArticleStatus.draft
    updated = await services.articles.update_seo(
        article.id, OWNER, seo_score=82.5, keywords=["title tag", " title tag ", "serp"], meta_description="How to"
    )
    assert updated.seo_score == 82.5
    assert updated.keywords == ["title tag", "serp"]
    assert updated.meta_description == "How to"


async def test_article_delete_unlinks_research(store, services, tree):
    _, _, sub = tree
    article = await services.articles.create(sub.id, OWNER, title="Title Tags 101")
    research = await services.research.create(sub.id, OWNER, content="c", source="s", article_id=article.id)
    await services.articles.delete(article.id, OWNER)
    assert (await store.find_research(research.id)).article_id is None


# ============================================================================
# Cascades
# ============================================================================


async def test_niche_delete_cascades_but_keeps_ledger(store, ledger, services, tree):
    niche, pillar, sub = tree
    outline = await services.outlines.create(sub.id, OWNER, [OutlineSectionIn(title="Intro", order_index=0)])
    article = await services.articles.create(sub.id, OWNER, title="A")
    research = await services.research.create(sub.id, OWNER, content="c", source="s")
    attempt = await ledger.record_attempt(ContentType.pillar, niche.id, GenerationRequest())

    assert await services.niches.delete(niche.id, OWNER) is True

    assert await store.find_niche(niche.id) is None
    assert await store.find_pillar(pillar.id) is None
    assert await store.find_subpillar(sub.id) is None
    assert await store.find_outline(outline.id) is None
    assert await store.find_article(article.id) is None
    assert await store.find_research(research.id) is None
    assert (await ledger.get(attempt.id)).content_id == niche.id


async def test_missing_entities_raise_not_found(services):
    with pytest.raises(NotFoundError):
        await services.pillars.get("missing")
    with pytest.raises(NotFoundError):
        await services.subpillars.get("missing")
    with pytest.raises(NotFoundError):
        await services.articles.get("missing")
    with pytest.raises(NotFoundError):
        await services.niches.delete("missing", OWNER)
