"""Create the catalog and listing tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op

from gearscout.adapters.sqlalchemy.mappings import catalog_entry_table, listing_table

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    catalog_entry_table.create(bind, checkfirst=True)
    listing_table.create(bind, checkfirst=True)


def downgrade() -> None:
    bind = op.get_bind()
    listing_table.drop(bind, checkfirst=True)
    catalog_entry_table.drop(bind, checkfirst=True)
