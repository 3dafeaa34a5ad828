from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Any, Dict, Generic, List, Optional, TypeVar
from datetime import datetime

from .models import (
    ArticleStatus,
    ContentType,
    GenerationStatus,
    NicheStatus,
    OutlineStatus,
    PillarStatus,
    SubpillarStatus,
)

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    data: T


class ErrorResponse(BaseModel):
    error: str
    message: str
    detail: Optional[str] = None


# =========================
# NICHE SCHEMAS
# =========================
class NichePillar(BaseModel):
    title: str
    status: PillarStatus = PillarStatus.pending
    approved: bool = False


class NicheCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class NicheUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[NicheStatus] = None


class NicheStatusUpdate(BaseModel):
    status: NicheStatus


class NicheRead(BaseModel):
    id: str
    name: str
    user_id: str
    pillars: List[NichePillar] = []
    progress: int
    status: NicheStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =========================
# PILLAR / SUBPILLAR SCHEMAS
# =========================
class PillarCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)


class PillarUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    status: Optional[PillarStatus] = None


class PillarRead(BaseModel):
    id: str
    title: str
    niche_id: str
    created_by_id: str
    status: PillarStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SubpillarUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    # plain str so legacy vocabularies reach the service and get a precise error
    status: Optional[str] = None


class SubpillarRead(BaseModel):
    id: str
    title: str
    pillar_id: str
    created_by_id: str
    status: SubpillarStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =========================
# OUTLINE SCHEMAS
# =========================
class ContentPoint(BaseModel):
    point: str
    generated: bool = False


class OutlineSectionIn(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content_points: List[ContentPoint] = []
    order_index: int = Field(ge=0)
    content: Optional[str] = None


class OutlineSectionRead(OutlineSectionIn):
    class Config:
        from_attributes = True


class OutlineCreate(BaseModel):
    sections: List[OutlineSectionIn] = []


class OutlineSectionsUpdate(BaseModel):
    sections: List[OutlineSectionIn]


class OutlineStatusUpdate(BaseModel):
    status: OutlineStatus


class OutlineRead(BaseModel):
    id: str
    subpillar_id: str
    status: OutlineStatus
    created_by_id: str
    sections: List[OutlineSectionRead] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =========================
# RESEARCH / ARTICLE SCHEMAS
# =========================
class ResearchCreate(BaseModel):
    content: str = Field(min_length=1)
    source: str = Field(min_length=1, max_length=500)
    relevance: float = Field(default=0.0, ge=0.0, le=1.0)
    notes: Optional[str] = None
    article_id: Optional[str] = None


class ResearchUpdate(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1)
    source: Optional[str] = Field(default=None, min_length=1, max_length=500)
    relevance: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    notes: Optional[str] = None
    article_id: Optional[str] = None


class ResearchRead(BaseModel):
    id: str
    subpillar_id: str
    content: str
    source: str
    relevance: float
    notes: Optional[str] = None
    created_by_id: str
    article_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ArticleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = ""
    status: ArticleStatus = ArticleStatus.draft
    keywords: List[str] = []
    meta_description: Optional[str] = None


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = None
    status: Optional[ArticleStatus] = None


class ArticleSEOUpdate(BaseModel):
    seo_score: Optional[float] = Field(default=None, ge=0, le=100)
    keywords: Optional[List[str]] = None
    meta_description: Optional[str] = None


class ArticleRead(BaseModel):
    id: str
    title: str
    content: str
    subpillar_id: str
    author_id: str
    status: ArticleStatus
    seo_score: Optional[float] = None
    keywords: List[str] = []
    meta_description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =========================
# GENERATION LEDGER SCHEMAS
# =========================
class GenerationRequest(BaseModel):
    llm_id: Optional[str] = None
    custom_prompt: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)


class GenerationRecordRequest(GenerationRequest):
    content_type: ContentType
    # content_generations.content_id is VARCHAR(36)
    content_id: str = Field(min_length=1, max_length=36)


class GenerationStatusUpdate(BaseModel):
    status: GenerationStatus
    error: Optional[str] = None


class GenerationMetadataUpdate(BaseModel):
    metadata: Dict[str, Any]


class GenerationAttemptRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, protected_namespaces=())

    id: str
    content_id: str
    content_type: ContentType
    llm_id: Optional[str] = None
    prompt: str
    temperature: float
    max_tokens: int
    status: GenerationStatus
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("meta", "metadata"))
    generated_at: datetime
    created_at: datetime
    updated_at: datetime
    # joined from llms
    llm_name: Optional[str] = None
    model_id: Optional[str] = None
    provider: Optional[str] = None


# =========================
# LLM CATALOG / WORKFLOW STEP SCHEMAS
# =========================
class LLMRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: str
    name: str
    model_id: str
    provider: str
    context_length: Optional[int] = None


class WorkflowStepRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    key: str
    name: str
    description: Optional[str] = None
    order_index: int
    default_llm_id: Optional[str] = None
    default_temperature: float
    default_max_tokens: int
    default_prompt: Optional[str] = None
    # joined from llms
    default_llm_name: Optional[str] = None
    default_model_id: Optional[str] = None
    default_provider: Optional[str] = None


class StepSettingsUpdate(BaseModel):
    """Full replace of one step's settings; omitted fields fall back to the step defaults."""

    llm_id: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    custom_prompt: Optional[str] = None


class UserStepSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    step_id: int
    llm_id: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    custom_prompt: Optional[str] = None
    updated_at: datetime
    # joined from llms
    llm_name: Optional[str] = None
    model_id: Optional[str] = None
    provider: Optional[str] = None


class StepDefaults(BaseModel):
    """Generation parameters resolved for one user and step, applied before the global defaults."""

    llm_id: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    custom_prompt: Optional[str] = None
