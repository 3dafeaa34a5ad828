"""Workflow state machine for the niche -> pillar -> subpillar tree.

Holds the status transition tables, the generation gates and the shared
generate -> parse -> persist pipeline used for pillars, subpillars, outline
sections and content points. Every generation is recorded in the ledger,
including the ones that fail.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Mapping, Optional

from contentflow.errors import AIServiceError, NotFoundError, ValidationError
from contentflow.models import (
    ContentType,
    GenerationStatus,
    NicheStatus,
    Outline,
    OutlineStatus,
    Pillar,
    PillarStatus,
    Research,
    Subpillar,
    SubpillarStatus,
)
from contentflow.schemas import GenerationAttemptRead, GenerationRequest
from contentflow.services.ledger import GenerationLedger
from contentflow.services.outlines import section_dict
from contentflow.services.ownership import assert_owner
from contentflow.services.steps import (
    CONTENT_POINTS_STEP,
    OUTLINE_STEP,
    PILLAR_STEP,
    SUBPILLAR_STEP,
    WorkflowSettingsService,
)
from contentflow.store import EntityStore

logger = logging.getLogger(__name__)

# rejected niches may be resubmitted; approved is terminal
NICHE_TRANSITIONS: Mapping[NicheStatus, frozenset] = {
    NicheStatus.pending: frozenset({NicheStatus.in_progress, NicheStatus.rejected}),
    NicheStatus.in_progress: frozenset({NicheStatus.approved, NicheStatus.rejected}),
    NicheStatus.rejected: frozenset({NicheStatus.pending}),
    NicheStatus.approved: frozenset(),
}

PILLAR_TRANSITIONS: Mapping[PillarStatus, frozenset] = {
    PillarStatus.pending: frozenset({PillarStatus.approved, PillarStatus.rejected, PillarStatus.in_progress}),
    PillarStatus.in_progress: frozenset({PillarStatus.approved, PillarStatus.rejected}),
    PillarStatus.rejected: frozenset({PillarStatus.pending}),
    PillarStatus.approved: frozenset({PillarStatus.in_progress}),
}

_NUMBERED = re.compile(r"^\d+\.")
_NUMBER_MARKER = re.compile(r"^\d+\.\s*")
_POINT_MARKER = re.compile(r"^(?:[-*•]|\d+\.)\s*")


def check_transition(kind: str, table: Mapping, current, target) -> bool:
    """Return True when ``current -> target`` changes state, False for a no-op.

    Raises ValidationError for a move the table does not allow.
    """
    if current == target:
        return False
    if target not in table.get(current, ()):
        raise ValidationError(
            f"Cannot change {kind} status from {_value(current)} to {_value(target)}"
        )
    return True


def _value(status) -> str:
    return getattr(status, "value", str(status))


def parse_numbered_list(text: str) -> list[str]:
    """Keep lines that start with ``N.``, minus the marker.

    "1. On-Page SEO\\nintro\\n2. Off-Page SEO" -> ["On-Page SEO", "Off-Page SEO"]
    """
    titles: list[str] = []
    for line in (text or "").split("\n"):
        line = line.strip()
        if not _NUMBERED.match(line):
            continue
        title = _NUMBER_MARKER.sub("", line).strip()
        if title:
            titles.append(title)
    return titles


def build_pillar_prompt(niche_name: str, count: int) -> str:
    return (
        f"Generate {count} main content pillars for the niche: {niche_name}.\n"
        "These pillars should be comprehensive topics that can be expanded into detailed content.\n"
        "Each pillar should be unique and cover a different aspect of the niche.\n"
        "Format the response as a numbered list (1., 2., etc.)."
    )


def build_subpillar_prompt(pillar_title: str, count: int) -> str:
    return (
        f'Generate exactly {count} detailed subpillars for the content pillar: "{pillar_title}".\n'
        "Each subpillar should be a specific subtopic or aspect that falls under this main pillar.\n"
        "The subpillars should be comprehensive enough to form the basis of detailed content pieces.\n"
        "Format the response as a numbered list (1., 2., etc.)."
    )


def parse_content_points(text: str) -> list[str]:
    """Every non-empty line is a point; leading bullets or numbers are dropped."""
    points: list[str] = []
    for line in (text or "").split("\n"):
        point = _POINT_MARKER.sub("", line.strip()).strip()
        if point:
            points.append(point)
    return points


def _research_block(research: Iterable[Research]) -> str:
    return "\n\n".join(f"Source: {r.source}\nContent: {r.content}" for r in research)


def build_outline_prompt(research: Iterable[Research]) -> str:
    return (
        "Based on the following research, generate a comprehensive article outline with 4-6 main sections. "
        "Each section should have a clear title that reflects its content.\n\n"
        f"Research:\n{_research_block(research)}\n\n"
        "Format the response as:\n1. [Section Title]\n2. [Section Title]\netc."
    )


def build_content_points_prompt(section_title: str, research: Iterable[Research]) -> str:
    return (
        f'Based on the following research, generate 3-5 detailed content points for the article section titled "{section_title}". '
        "Each point should be comprehensive and backed by the research provided.\n\n"
        f"Research:\n{_research_block(research)}\n\n"
        "Format each point as a clear, detailed statement that can be expanded into full paragraphs."
    )


def compute_progress(summary: list[dict]) -> int:
    if not summary:
        return 0
    approved = sum(1 for item in summary if item.get("approved"))
    return round(100 * approved / len(summary))


class GenerationWorkflow:
    def __init__(self, store: EntityStore, llm, ledger: GenerationLedger, *,
                 steps: Optional[WorkflowSettingsService] = None,
                 pillar_count: int = 5, subpillar_count: int = 3):
        self.store = store
        self.llm = llm
        self.ledger = ledger
        self.steps = steps or WorkflowSettingsService(store)
        self.pillar_count = pillar_count
        self.subpillar_count = subpillar_count

    async def _run_model(self, content_type: ContentType, content_id: str, prompt: str,
                         request: GenerationRequest, *, user_id: str, step: str,
                         parse: Callable[[str], list], empty_message: str):
        """Record an attempt, call the model with the recorded parameters and parse the reply.

        Model and parse failures mark the attempt ``failed`` before propagating.
        """
        defaults = await self.steps.resolve(user_id, step)
        attempt = await self.ledger.record_attempt(content_type, content_id, request,
                                                   prompt=prompt, defaults=defaults)
        try:
            text = await self.llm.generate(
                attempt.prompt,
                attempt.llm_id,
                temperature=attempt.temperature,
                max_tokens=attempt.max_tokens,
            )
        except AIServiceError as exc:
            logger.error("Generation %s for %s %s failed: %s", attempt.id, content_type.value, content_id, exc)
            await self.ledger.update_status(attempt.id, GenerationStatus.failed, error=str(exc))
            raise

        items = parse(text)
        if not items:
            logger.warning("Generation %s returned nothing usable", attempt.id)
            await self.ledger.update_status(attempt.id, GenerationStatus.failed, error=empty_message)
            raise ValidationError(empty_message)
        return attempt, items

    async def _mark_completed(self, attempt: GenerationAttemptRead, result: dict) -> None:
        metadata = dict(attempt.metadata or {})
        metadata["result"] = result
        await self.ledger.update_metadata(attempt.id, metadata)
        await self.ledger.update_status(attempt.id, GenerationStatus.completed)

    async def _mark_failed(self, attempt: GenerationAttemptRead, exc: Exception) -> None:
        await self.ledger.update_status(attempt.id, GenerationStatus.failed, error=str(exc))

    async def _research_for(self, subpillar_id: str) -> list[Research]:
        research = await self.store.find_research_by_subpillar(subpillar_id)
        if not research:
            raise ValidationError("No research found for this subpillar")
        return research

    async def generate_pillars(self, niche_id: str, user_id: str,
                               request: Optional[GenerationRequest] = None) -> list[Pillar]:
        request = request or GenerationRequest()
        logger.info("Generating pillars for niche %s by user %s", niche_id, user_id)
        niche = await self.store.find_niche(niche_id)
        if niche is None:
            raise NotFoundError("Niche not found")
        assert_owner(niche, user_id, field="user_id", action="generate pillars for")

        attempt, titles = await self._run_model(
            ContentType.pillar, niche.id, build_pillar_prompt(niche.name, self.pillar_count), request,
            user_id=user_id, step=PILLAR_STEP, parse=parse_numbered_list,
            empty_message="Failed to generate valid pillars from AI response",
        )

        rows = [
            {"title": title, "niche_id": niche.id, "created_by_id": user_id, "status": PillarStatus.pending}
            for title in titles
        ]
        try:
            async with self.store.transaction():
                pillars = await self.store.create_pillars(rows)
                summary = list(niche.pillars or []) + [
                    {"title": p.title, "status": PillarStatus.pending.value, "approved": False} for p in pillars
                ]
                fields = {"pillars": summary, "progress": compute_progress(summary)}
                # first generation moves the niche into progress
                if niche.status == NicheStatus.pending:
                    check_transition("niche", NICHE_TRANSITIONS, niche.status, NicheStatus.in_progress)
                    fields["status"] = NicheStatus.in_progress
                await self.store.update_niche(niche.id, **fields)
        except Exception as exc:
            logger.exception("Persisting pillars for niche %s failed", niche_id)
            await self._mark_failed(attempt, exc)
            raise

        await self._mark_completed(attempt, {"createdIds": [p.id for p in pillars], "count": len(pillars)})
        logger.info("Generated %d pillars for niche %s", len(pillars), niche_id)
        return pillars

    async def generate_subpillars(self, pillar_id: str, user_id: str,
                                  request: Optional[GenerationRequest] = None) -> list[Subpillar]:
        request = request or GenerationRequest()
        logger.info("Generating subpillars for pillar %s by user %s", pillar_id, user_id)
        pillar = await self.store.find_pillar(pillar_id)
        if pillar is None:
            raise NotFoundError("Pillar not found")
        assert_owner(pillar, user_id, action="generate subpillars for")
        if pillar.status != PillarStatus.approved:
            raise ValidationError("Can only generate subpillars for approved pillars")

        attempt, titles = await self._run_model(
            ContentType.subpillar, pillar.id, build_subpillar_prompt(pillar.title, self.subpillar_count), request,
            user_id=user_id, step=SUBPILLAR_STEP, parse=parse_numbered_list,
            empty_message="Failed to generate valid subpillars from AI response",
        )

        rows = [
            {"title": title, "pillar_id": pillar.id, "created_by_id": user_id, "status": SubpillarStatus.draft}
            for title in titles
        ]
        try:
            async with self.store.transaction():
                subpillars = await self.store.create_subpillars(rows)
        except Exception as exc:
            logger.exception("Persisting subpillars for pillar %s failed", pillar_id)
            await self._mark_failed(attempt, exc)
            raise

        await self._mark_completed(attempt, {"createdIds": [s.id for s in subpillars], "count": len(subpillars)})
        logger.info("Generated %d subpillars for pillar %s", len(subpillars), pillar_id)
        return subpillars

    async def generate_outline(self, subpillar_id: str, user_id: str,
                               request: Optional[GenerationRequest] = None) -> Outline:
        """Draft outline sections from the subpillar's research.

        Creates the outline when the subpillar has none; otherwise the
        existing outline's sections are replaced as one unit.
        """
        request = request or GenerationRequest()
        logger.info("Generating outline for subpillar %s by user %s", subpillar_id, user_id)
        subpillar = await self.store.find_subpillar(subpillar_id)
        if subpillar is None:
            raise NotFoundError("Subpillar not found")
        assert_owner(subpillar, user_id, action="generate an outline for")
        existing = await self.store.find_outline_by_subpillar(subpillar_id)
        if existing is not None:
            assert_owner(existing, user_id, action="regenerate")
        research = await self._research_for(subpillar_id)

        attempt, titles = await self._run_model(
            ContentType.outline, subpillar.id, build_outline_prompt(research), request,
            user_id=user_id, step=OUTLINE_STEP, parse=parse_numbered_list,
            empty_message="Failed to generate valid outline sections",
        )

        sections = [{"title": title, "content_points": [], "order_index": i} for i, title in enumerate(titles)]
        try:
            if existing is None:
                outline = await self.store.create_outline(
                    subpillar_id=subpillar.id,
                    created_by_id=user_id,
                    status=OutlineStatus.draft,
                    sections=sections,
                )
            else:
                outline = await self.store.update_outline(existing.id, sections=sections)
        except Exception as exc:
            logger.exception("Persisting outline for subpillar %s failed", subpillar_id)
            await self._mark_failed(attempt, exc)
            raise

        await self._mark_completed(attempt, {"createdIds": [outline.id], "count": len(sections)})
        logger.info("Generated %d outline sections for subpillar %s", len(sections), subpillar_id)
        return outline

    async def generate_content_points(self, outline_id: str, index: int, user_id: str,
                                      request: Optional[GenerationRequest] = None) -> Outline:
        request = request or GenerationRequest()
        logger.info("Generating content points for section %d of outline %s", index, outline_id)
        outline = await self.store.find_outline(outline_id)
        if outline is None:
            raise NotFoundError("Outline not found")
        assert_owner(outline, user_id, action="generate content points for")
        rows = [section_dict(s) for s in outline.sections]
        if index < 0 or index >= len(rows):
            raise ValidationError("Invalid section index")
        research = await self._research_for(outline.subpillar_id)

        attempt, points = await self._run_model(
            ContentType.outline, outline.id, build_content_points_prompt(rows[index]["title"], research), request,
            user_id=user_id, step=CONTENT_POINTS_STEP, parse=parse_content_points,
            empty_message="Failed to generate valid content points",
        )

        rows[index]["content_points"] = [{"point": point, "generated": True} for point in points]
        try:
            outline = await self.store.update_outline(outline.id, sections=rows)
        except Exception as exc:
            logger.exception("Persisting content points for outline %s failed", outline_id)
            await self._mark_failed(attempt, exc)
            raise

        await self._mark_completed(attempt, {"sectionIndex": index, "count": len(points)})
        return outline
