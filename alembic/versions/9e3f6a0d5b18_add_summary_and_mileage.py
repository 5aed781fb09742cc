"""add_summary_and_mileage

Revision ID: 9e3f6a0d5b18
Revises: 4b7d2e91c0a3
Create Date: 2026-10-06 09:41:37.204118

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "9e3f6a0d5b18"
down_revision: Union[str, Sequence[str], None] = "4b7d2e91c0a3"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Deployments created before this revision may already have the columns.
    op.execute(
        """
        ALTER TABLE vehicle_maintenance.maintenance_records
        ADD COLUMN IF NOT EXISTS summary TEXT,
        ADD COLUMN IF NOT EXISTS mileage INTEGER
        """
    )


def downgrade() -> None:
    """Downgrade schema.

    Additive-only: columns are kept so existing rows lose no data.
    """
