"""create employee and app settings tables

Revision ID: 5e2a9c41d7b3
Revises:
Create Date: 2026-01-12 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e2a9c41d7b3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'sst_employees',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('registration', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=255), nullable=False),
        sa.Column('sector', sa.String(length=255), nullable=False),
        sa.Column('company', sa.String(length=255), nullable=False),
        sa.Column('photo_url', sa.Text(), nullable=True),
        sa.Column('trainings', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sst_employees_registration'), 'sst_employees', ['registration'], unique=False)
    op.create_index('idx_sst_employees_company_sector', 'sst_employees', ['company', 'sector'], unique=False)

    op.create_table(
        'app_settings',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade() -> None:
    op.drop_table('app_settings')
    op.drop_index('idx_sst_employees_company_sector', table_name='sst_employees')
    op.drop_index(op.f('ix_sst_employees_registration'), table_name='sst_employees')
    op.drop_table('sst_employees')
