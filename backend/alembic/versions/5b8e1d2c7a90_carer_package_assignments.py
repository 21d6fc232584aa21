"""carer_package_assignments

Revision ID: 5b8e1d2c7a90
Revises: 0f3c2a7b9d41
Create Date: 2026-10-20 10:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b8e1d2c7a90'
down_revision: Union[str, None] = '0f3c2a7b9d41'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'carer_package_assignments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('carer_id', sa.Uuid(), nullable=False),
        sa.Column('package_id', sa.Uuid(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['carer_id'], ['carers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['package_id'], ['care_packages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('carer_id', 'package_id'),
    )


def downgrade() -> None:
    op.drop_table('carer_package_assignments')
