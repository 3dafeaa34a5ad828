"""workflow steps and per-user step settings

Revision ID: 8c41d6e2a5f7
Revises: 3f9a2c71d0b4
Create Date: 2026-10-19 15:02:13.440127

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c41d6e2a5f7'
down_revision: Union[str, Sequence[str], None] = '3f9a2c71d0b4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('llms', sa.Column('context_length', sa.Integer(), nullable=True))

    op.create_table(
        'workflow_steps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('default_llm_id', sa.String(length=100), nullable=True),
        sa.Column('default_temperature', sa.Float(), nullable=False),
        sa.Column('default_max_tokens', sa.Integer(), nullable=False),
        sa.Column('default_prompt', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['default_llm_id'], ['llms.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )

    op.create_table(
        'user_step_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('step_id', sa.Integer(), nullable=False),
        sa.Column('llm_id', sa.String(length=100), nullable=True),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('max_tokens', sa.Integer(), nullable=True),
        sa.Column('custom_prompt', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['step_id'], ['workflow_steps.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['llm_id'], ['llms.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'step_id', name='uq_user_step_settings_user_step'),
    )
    op.create_index(op.f('ix_user_step_settings_user_id'), 'user_step_settings', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_user_step_settings_user_id'), table_name='user_step_settings')
    op.drop_table('user_step_settings')
    op.drop_table('workflow_steps')
    op.drop_column('llms', 'context_length')
