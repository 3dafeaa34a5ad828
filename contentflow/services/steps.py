# services/steps.py
"""LLM catalog, workflow-step catalog and per-user step settings.

Each generation step has catalog defaults (model, temperature, max tokens,
prompt). A user may override any of them per step; ``resolve`` merges the
user's row over the step defaults, and whatever is still unset falls back
to the ledger's global defaults.
"""
from __future__ import annotations

import logging
from typing import Optional

from contentflow.errors import NotFoundError, ValidationError
from contentflow.schemas import (
    LLMRead,
    StepDefaults,
    StepSettingsUpdate,
    UserStepSettingsRead,
    WorkflowStepRead,
)
from contentflow.store import EntityStore

logger = logging.getLogger(__name__)

PILLAR_STEP = "pillars"
SUBPILLAR_STEP = "subpillars"
OUTLINE_STEP = "outline"
CONTENT_POINTS_STEP = "content_points"

# key, name, description; order follows the niche -> article flow
DEFAULT_STEPS = (
    (PILLAR_STEP, "Pillar generation", "Suggest the main content pillars for a niche."),
    (SUBPILLAR_STEP, "Subpillar generation", "Break an approved pillar into subtopics."),
    (OUTLINE_STEP, "Outline generation", "Draft article sections from a subpillar's research."),
    (CONTENT_POINTS_STEP, "Content points", "Write the talking points for one outline section."),
)


def _step_read(step, llm=None) -> WorkflowStepRead:
    read = WorkflowStepRead.model_validate(step)
    if llm is not None:
        read.default_llm_name = llm.name
        read.default_model_id = llm.model_id
        read.default_provider = llm.provider
    return read


def _setting_read(setting, llm=None) -> UserStepSettingsRead:
    read = UserStepSettingsRead.model_validate(setting)
    if llm is not None:
        read.llm_name = llm.name
        read.model_id = llm.model_id
        read.provider = llm.provider
    return read


def _pick(*values):
    for value in values:
        if value is not None:
            return value
    return None


class WorkflowSettingsService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def register_default_steps(self, llm_id: Optional[str], *, temperature: float,
                                     max_tokens: int) -> None:
        for order, (key, name, description) in enumerate(DEFAULT_STEPS, start=1):
            await self.store.ensure_workflow_step(
                key,
                name=name,
                description=description,
                order_index=order,
                default_llm_id=llm_id,
                default_temperature=temperature,
                default_max_tokens=max_tokens,
            )
        logger.info("Registered %d workflow steps", len(DEFAULT_STEPS))

    # -------------------------
    # Catalogs
    # -------------------------
    async def list_llms(self, provider: Optional[str] = None) -> list[LLMRead]:
        llms = await self.store.find_llms(provider)
        logger.info("Retrieved %d LLMs%s", len(llms), f" for provider {provider}" if provider else "")
        return [LLMRead.model_validate(llm) for llm in llms]

    async def list_steps(self) -> list[WorkflowStepRead]:
        rows = await self.store.find_workflow_steps()
        return [_step_read(step, llm) for step, llm in rows]

    # -------------------------
    # Per-user settings
    # -------------------------
    async def get_user_settings(self, user_id: str) -> list[UserStepSettingsRead]:
        rows = await self.store.find_user_step_settings(user_id)
        logger.info("Retrieved %d step settings for user %s", len(rows), user_id)
        return [_setting_read(setting, llm) for setting, llm in rows]

    async def update_user_settings(self, user_id: str, step_id: int,
                                   payload: StepSettingsUpdate) -> UserStepSettingsRead:
        if await self.store.find_workflow_step(step_id) is None:
            raise NotFoundError("Workflow step not found")
        llm = None
        if payload.llm_id is not None:
            llm = await self.store.find_llm(payload.llm_id)
            if llm is None:
                raise ValidationError(f"Unknown LLM: {payload.llm_id}")
        logger.info("Updating step %s settings for user %s", step_id, user_id)
        setting = await self.store.upsert_user_step_settings(
            user_id,
            step_id,
            llm_id=payload.llm_id,
            temperature=payload.temperature,
            max_tokens=payload.max_tokens,
            custom_prompt=payload.custom_prompt,
        )
        return _setting_read(setting, llm)

    async def reset_user_settings(self, user_id: str) -> int:
        removed = await self.store.delete_user_step_settings(user_id)
        logger.info("Reset %d step settings for user %s", removed, user_id)
        return removed

    async def resolve(self, user_id: str, step_key: str) -> StepDefaults:
        """User row over step defaults; an unknown step resolves to nothing."""
        step = await self.store.find_workflow_step_by_key(step_key)
        if step is None:
            return StepDefaults()
        setting = await self.store.find_user_step_setting(user_id, step.id)
        if setting is None:
            return StepDefaults(
                llm_id=step.default_llm_id,
                temperature=step.default_temperature,
                max_tokens=step.default_max_tokens,
                custom_prompt=step.default_prompt,
            )
        return StepDefaults(
            llm_id=_pick(setting.llm_id, step.default_llm_id),
            temperature=_pick(setting.temperature, step.default_temperature),
            max_tokens=_pick(setting.max_tokens, step.default_max_tokens),
            custom_prompt=setting.custom_prompt or step.default_prompt,
        )
