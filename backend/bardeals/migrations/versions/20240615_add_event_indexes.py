"""index start_time, lower(type) and location for the public query

Revision ID: 20240615_add_event_indexes
Revises: 20240601_create_events
Create Date: 2024-06-15
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20240615_add_event_indexes"
down_revision: Union[str, Sequence[str], None] = "20240601_create_events"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_index("ix_events_start_time", "events", ["start_time"])
    op.create_index("ix_events_lower_type", "events", [sa.text("lower(type)")])
    op.create_index("ix_events_location", "events", ["location"], postgresql_using="gist")


def downgrade() -> None:
    op.drop_index("ix_events_location", table_name="events")
    op.drop_index("ix_events_lower_type", table_name="events")
    op.drop_index("ix_events_start_time", table_name="events")
