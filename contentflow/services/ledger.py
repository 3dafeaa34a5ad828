# services/ledger.py
"""Generation ledger: one row per LLM invocation attempt.

Rows are created once and afterwards only ``status``, ``error`` and
``metadata`` change. A retry is a new row pointing back through
``metadata.retryOf``; several retries of one original form a star. Updates
are last-writer-wins.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from contentflow.errors import NotFoundError
from contentflow.models import ContentType, GenerationStatus
from contentflow.schemas import GenerationAttemptRead, GenerationRequest, StepDefaults
from contentflow.store import EntityStore

logger = logging.getLogger(__name__)

RETRY_REASON = "Manual retry"


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _first(*values):
    return next((v for v in values if v is not None), None)


def _attempt(generation, llm=None) -> GenerationAttemptRead:
    attempt = GenerationAttemptRead.model_validate(generation)
    if llm is not None:
        attempt.llm_name = llm.name
        attempt.model_id = llm.model_id
        attempt.provider = llm.provider
    return attempt


class GenerationLedger:
    def __init__(self, store: EntityStore, *, default_llm_id: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 1000):
        self.store = store
        self.default_llm_id = default_llm_id
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    async def _reload(self, generation_id: str) -> GenerationAttemptRead:
        found = await self.store.find_generation(generation_id)
        if found is None:
            raise NotFoundError("Generation not found")
        return _attempt(*found)

    async def record_attempt(self, content_type: ContentType, content_id: str,
                             request: GenerationRequest, *, prompt: Optional[str] = None,
                             defaults: Optional[StepDefaults] = None) -> GenerationAttemptRead:
        """Insert a pending attempt.

        ``prompt`` is the prompt the workflow built; a custom prompt on the
        request, or else on the caller's step settings, takes its place.
        Each parameter comes from the request, then ``defaults``, then the
        ledger-wide defaults. Metadata only flags whether a custom prompt
        was supplied.
        """
        defaults = defaults or StepDefaults()
        temperature = _first(request.temperature, defaults.temperature, self.default_temperature)
        max_tokens = _first(request.max_tokens, defaults.max_tokens, self.default_max_tokens)
        custom_prompt = request.custom_prompt or defaults.custom_prompt
        logger.info("Recording %s generation for content %s", content_type.value, content_id)
        generation = await self.store.create_generation(
            content_id=content_id,
            content_type=content_type,
            llm_id=request.llm_id or defaults.llm_id or self.default_llm_id,
            prompt=custom_prompt or prompt or "",
            temperature=temperature,
            max_tokens=max_tokens,
            status=GenerationStatus.pending,
            meta={
                "requestMetadata": {
                    "timestamp": _iso(datetime.now(timezone.utc)),
                    "customPrompt": bool(custom_prompt),
                    "temperature": request.temperature,
                    "maxTokens": request.max_tokens,
                }
            },
        )
        return await self._reload(generation.id)

    async def get(self, generation_id: str) -> GenerationAttemptRead:
        return await self._reload(generation_id)

    async def update_status(self, generation_id: str, status: GenerationStatus,
                            error: Optional[str] = None) -> GenerationAttemptRead:
        # error text is kept only on failed rows
        if error and status != GenerationStatus.failed:
            logger.debug("Dropping error for generation %s with status %s", generation_id, status.value)
            error = None
        updated = await self.store.update_generation(generation_id, status=status, error=error)
        if updated is None:
            raise NotFoundError("Generation not found")
        logger.info("Generation %s marked %s", generation_id, status.value)
        return await self._reload(generation_id)

    async def update_metadata(self, generation_id: str, metadata: dict[str, Any]) -> GenerationAttemptRead:
        """Full replace; read-modify-write to keep earlier keys."""
        updated = await self.store.update_generation(generation_id, meta=dict(metadata))
        if updated is None:
            raise NotFoundError("Generation not found")
        return await self._reload(generation_id)

    async def retry(self, generation_id: str) -> GenerationAttemptRead:
        found = await self.store.find_generation(generation_id)
        if found is None:
            raise NotFoundError("Generation not found")
        original, _ = found
        logger.info("Retrying generation %s", generation_id)
        retry = await self.store.create_generation(
            content_id=original.content_id,
            content_type=original.content_type,
            llm_id=original.llm_id,
            prompt=original.prompt,
            temperature=original.temperature,
            max_tokens=original.max_tokens,
            status=GenerationStatus.pending,
            meta={
                "retryOf": original.id,
                "originalMetadata": original.meta,
                "retryInfo": {
                    "timestamp": _iso(datetime.now(timezone.utc)),
                    "originalGenerationDate": _iso(original.generated_at),
                    "reason": RETRY_REASON,
                    "previousStatus": GenerationStatus(original.status).value,
                    "previousError": original.error,
                },
            },
        )
        return await self._reload(retry.id)

    async def history(self, content_id: str) -> list[GenerationAttemptRead]:
        rows = await self.store.find_generations_by_content(content_id)
        return [_attempt(generation, llm) for generation, llm in rows]

    async def retry_chain(self, generation_id: str) -> list[GenerationAttemptRead]:
        """Follow ``metadata.retryOf`` back to the first attempt, newest first."""
        chain: list[GenerationAttemptRead] = []
        seen: set[str] = set()
        current: Optional[str] = generation_id
        while current and current not in seen:
            seen.add(current)
            found = await self.store.find_generation(current)
            if found is None:
                break
            attempt = _attempt(*found)
            chain.append(attempt)
            current = (attempt.metadata or {}).get("retryOf")
        if not chain:
            raise NotFoundError("Generation not found")
        return chain
