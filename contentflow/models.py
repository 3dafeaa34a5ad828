from sqlalchemy import (
    Column, Integer, String, ForeignKey, Text, DateTime, Index, JSON, Float, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy import Enum as SAEnum
from datetime import datetime, timezone
import enum
import uuid

from .database import Base

# JSONB on PostgreSQL, plain JSON (TEXT) on SQLite
JSONType = JSONB().with_variant(JSON(), "sqlite")


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NicheStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    in_progress = "in_progress"


class PillarStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    in_progress = "in_progress"


class SubpillarStatus(str, enum.Enum):
    draft = "draft"
    research = "research"
    outline = "outline"
    complete = "complete"


class OutlineStatus(str, enum.Enum):
    draft = "draft"
    approved = "approved"
    in_progress = "in_progress"


class ArticleStatus(str, enum.Enum):
    draft = "draft"
    review = "review"
    published = "published"


class GenerationStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


class ContentType(str, enum.Enum):
    pillar = "pillar"
    subpillar = "subpillar"
    outline = "outline"
    article = "article"


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


# ---------------------------
# CONTENT TREE
# ---------------------------
class Niche(TimestampMixin, Base):
    __tablename__ = "niches"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    user_id = Column(String(64), index=True, nullable=False)
    # denormalized [{title, status, approved}]; maintained by the workflow, not derived
    pillars = Column(JSONType, nullable=False, default=list)
    progress = Column(Integer, nullable=False, default=0)
    status = Column(SAEnum(NicheStatus, name="niche_status"), nullable=False, default=NicheStatus.pending)

    def __repr__(self):
        return f"<Niche {self.id} {self.name!r}>"


class Pillar(TimestampMixin, Base):
    __tablename__ = "pillars"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(300), nullable=False)
    niche_id = Column(String(36), ForeignKey("niches.id", ondelete="CASCADE"), index=True, nullable=False)
    created_by_id = Column(String(64), index=True, nullable=False)
    status = Column(SAEnum(PillarStatus, name="pillar_status"), nullable=False, default=PillarStatus.pending)


class Subpillar(TimestampMixin, Base):
    __tablename__ = "subpillars"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(300), nullable=False)
    pillar_id = Column(String(36), ForeignKey("pillars.id", ondelete="CASCADE"), index=True, nullable=False)
    created_by_id = Column(String(64), index=True, nullable=False)
    status = Column(SAEnum(SubpillarStatus, name="subpillar_status"), nullable=False, default=SubpillarStatus.draft)


# ---------------------------
# OUTLINES
# ---------------------------
class Outline(TimestampMixin, Base):
    __tablename__ = "outlines"

    id = Column(String(36), primary_key=True, default=_uuid)
    # one outline per subpillar is a service rule, not a constraint
    subpillar_id = Column(String(36), ForeignKey("subpillars.id", ondelete="CASCADE"), index=True, nullable=False)
    status = Column(SAEnum(OutlineStatus, name="outline_status"), nullable=False, default=OutlineStatus.draft)
    created_by_id = Column(String(64), index=True, nullable=False)

    sections = relationship(
        "OutlineSection",
        order_by=lambda: [OutlineSection.order_index.asc(), OutlineSection.id.asc()],
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )


class OutlineSection(Base):
    __tablename__ = "outline_sections"

    id = Column(Integer, primary_key=True)
    outline_id = Column(String(36), ForeignKey("outlines.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(300), nullable=False)
    content_points = Column(JSONType, nullable=False, default=list)  # [{point, generated}]
    order_index = Column(Integer, nullable=False, default=0)
    content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_outline_sections_outline_order", "outline_id", "order_index"),
    )


# ---------------------------
# RESEARCH / ARTICLES
# ---------------------------
class Article(TimestampMixin, Base):
    __tablename__ = "articles"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False, default="")
    subpillar_id = Column(String(36), ForeignKey("subpillars.id", ondelete="CASCADE"), index=True, nullable=False)
    author_id = Column(String(64), index=True, nullable=False)
    status = Column(SAEnum(ArticleStatus, name="article_status"), nullable=False, default=ArticleStatus.draft)
    seo_score = Column(Float, nullable=True)
    keywords = Column(JSONType, nullable=False, default=list)
    meta_description = Column(Text, nullable=True)


class Research(TimestampMixin, Base):
    __tablename__ = "research"

    id = Column(String(36), primary_key=True, default=_uuid)
    subpillar_id = Column(String(36), ForeignKey("subpillars.id", ondelete="CASCADE"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    source = Column(String(500), nullable=False)
    relevance = Column(Float, nullable=False, default=0.0)  # 0..1
    notes = Column(Text, nullable=True)
    created_by_id = Column(String(64), index=True, nullable=False)
    article_id = Column(String(36), ForeignKey("articles.id", ondelete="SET NULL"), nullable=True)


# ---------------------------
# GENERATION LEDGER
# ---------------------------
class LLM(Base):
    __tablename__ = "llms"

    id = Column(String(100), primary_key=True)
    name = Column(String(200), nullable=False)
    model_id = Column(String(200), nullable=False)
    provider = Column(String(64), nullable=False)
    context_length = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class ContentGeneration(TimestampMixin, Base):
    __tablename__ = "content_generations"

    id = Column(String(36), primary_key=True, default=_uuid)
    # polymorphic target; no FK so any content-bearing table can be referenced
    content_id = Column(String(36), index=True, nullable=False)
    content_type = Column(SAEnum(ContentType, name="content_type"), nullable=False)
    llm_id = Column(String(100), nullable=True)
    prompt = Column(Text, nullable=False, default="")
    temperature = Column(Float, nullable=False)
    max_tokens = Column(Integer, nullable=False)
    status = Column(SAEnum(GenerationStatus, name="generation_status"), nullable=False, default=GenerationStatus.pending)
    error = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSONType, nullable=False, default=dict)
    generated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


# ---------------------------
# WORKFLOW STEPS / PER-USER SETTINGS
# ---------------------------
class WorkflowStep(Base):
    __tablename__ = "workflow_steps"

    id = Column(Integer, primary_key=True)
    # stable name the workflow looks steps up by
    key = Column(String(64), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    default_llm_id = Column(String(100), ForeignKey("llms.id", ondelete="SET NULL"), nullable=True)
    default_temperature = Column(Float, nullable=False, default=0.7)
    default_max_tokens = Column(Integer, nullable=False, default=1000)
    default_prompt = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class UserStepSettings(TimestampMixin, Base):
    __tablename__ = "user_step_settings"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), index=True, nullable=False)
    step_id = Column(Integer, ForeignKey("workflow_steps.id", ondelete="CASCADE"), nullable=False)
    # null fields fall back to the step defaults
    llm_id = Column(String(100), ForeignKey("llms.id", ondelete="SET NULL"), nullable=True)
    temperature = Column(Float, nullable=True)
    max_tokens = Column(Integer, nullable=True)
    custom_prompt = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "step_id", name="uq_user_step_settings_user_step"),
    )
