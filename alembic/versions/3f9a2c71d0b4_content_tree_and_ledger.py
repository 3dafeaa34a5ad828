"""content tree and generation ledger

Revision ID: 3f9a2c71d0b4
Revises:
Create Date: 2026-10-19 10:20:41.118903

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f9a2c71d0b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = postgresql.JSONB().with_variant(sa.JSON(), 'sqlite')

TREE_STATUS = ('pending', 'approved', 'rejected', 'in_progress')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'niches',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('pillars', JSONType, nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.Enum(*TREE_STATUS, name='niche_status'), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_niches_user_id'), 'niches', ['user_id'], unique=False)

    op.create_table(
        'pillars',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('niche_id', sa.String(length=36), nullable=False),
        sa.Column('created_by_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.Enum(*TREE_STATUS, name='pillar_status'), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['niche_id'], ['niches.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_pillars_niche_id'), 'pillars', ['niche_id'], unique=False)
    op.create_index(op.f('ix_pillars_created_by_id'), 'pillars', ['created_by_id'], unique=False)

    op.create_table(
        'subpillars',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('pillar_id', sa.String(length=36), nullable=False),
        sa.Column('created_by_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.Enum('draft', 'research', 'outline', 'complete', name='subpillar_status'), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['pillar_id'], ['pillars.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_subpillars_pillar_id'), 'subpillars', ['pillar_id'], unique=False)
    op.create_index(op.f('ix_subpillars_created_by_id'), 'subpillars', ['created_by_id'], unique=False)

    op.create_table(
        'outlines',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('subpillar_id', sa.String(length=36), nullable=False),
        sa.Column('status', sa.Enum('draft', 'approved', 'in_progress', name='outline_status'), nullable=False),
        sa.Column('created_by_id', sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['subpillar_id'], ['subpillars.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_outlines_subpillar_id'), 'outlines', ['subpillar_id'], unique=False)
    op.create_index(op.f('ix_outlines_created_by_id'), 'outlines', ['created_by_id'], unique=False)

    op.create_table(
        'outline_sections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('outline_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('content_points', JSONType, nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['outline_id'], ['outlines.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_outline_sections_outline_order', 'outline_sections', ['outline_id', 'order_index'], unique=False)

    op.create_table(
        'articles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('subpillar_id', sa.String(length=36), nullable=False),
        sa.Column('author_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.Enum('draft', 'review', 'published', name='article_status'), nullable=False),
        sa.Column('seo_score', sa.Float(), nullable=True),
        sa.Column('keywords', JSONType, nullable=False),
        sa.Column('meta_description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['subpillar_id'], ['subpillars.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_articles_subpillar_id'), 'articles', ['subpillar_id'], unique=False)
    op.create_index(op.f('ix_articles_author_id'), 'articles', ['author_id'], unique=False)

    op.create_table(
        'research',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('subpillar_id', sa.String(length=36), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('source', sa.String(length=500), nullable=False),
        sa.Column('relevance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_id', sa.String(length=64), nullable=False),
        sa.Column('article_id', sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['subpillar_id'], ['subpillars.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['article_id'], ['articles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_research_subpillar_id'), 'research', ['subpillar_id'], unique=False)
    op.create_index(op.f('ix_research_created_by_id'), 'research', ['created_by_id'], unique=False)

    op.create_table(
        'llms',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('model_id', sa.String(length=200), nullable=False),
        sa.Column('provider', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'content_generations',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('content_id', sa.String(length=36), nullable=False),
        sa.Column('content_type', sa.Enum('pillar', 'subpillar', 'outline', 'article', name='content_type'), nullable=False),
        sa.Column('llm_id', sa.String(length=100), nullable=True),
        sa.Column('prompt', sa.Text(), nullable=False, server_default=''),
        sa.Column('temperature', sa.Float(), nullable=False),
        sa.Column('max_tokens', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('pending', 'completed', 'failed', name='generation_status'), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('metadata', JSONType, nullable=False),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_content_generations_content_id'), 'content_generations', ['content_id'], unique=False)
    op.create_index(op.f('ix_content_generations_generated_at'), 'content_generations', ['generated_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_content_generations_generated_at'), table_name='content_generations')
    op.drop_index(op.f('ix_content_generations_content_id'), table_name='content_generations')
    op.drop_table('content_generations')
    op.drop_table('llms')
    op.drop_index(op.f('ix_research_created_by_id'), table_name='research')
    op.drop_index(op.f('ix_research_subpillar_id'), table_name='research')
    op.drop_table('research')
    op.drop_index(op.f('ix_articles_author_id'), table_name='articles')
    op.drop_index(op.f('ix_articles_subpillar_id'), table_name='articles')
    op.drop_table('articles')
    op.drop_index('ix_outline_sections_outline_order', table_name='outline_sections')
    op.drop_table('outline_sections')
    op.drop_index(op.f('ix_outlines_created_by_id'), table_name='outlines')
    op.drop_index(op.f('ix_outlines_subpillar_id'), table_name='outlines')
    op.drop_table('outlines')
    op.drop_index(op.f('ix_subpillars_created_by_id'), table_name='subpillars')
    op.drop_index(op.f('ix_subpillars_pillar_id'), table_name='subpillars')
    op.drop_table('subpillars')
    op.drop_index(op.f('ix_pillars_created_by_id'), table_name='pillars')
    op.drop_index(op.f('ix_pillars_niche_id'), table_name='pillars')
    op.drop_table('pillars')
    op.drop_index(op.f('ix_niches_user_id'), table_name='niches')
    op.drop_table('niches')
    for enum_name in ('generation_status', 'content_type', 'article_status', 'outline_status',
                      'subpillar_status', 'pillar_status', 'niche_status'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
