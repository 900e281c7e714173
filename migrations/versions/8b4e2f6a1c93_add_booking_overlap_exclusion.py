"""add booking overlap exclusion constraint (PostgreSQL only)

Revision ID: 8b4e2f6a1c93
Revises: 3f1a9c2d7e10
Create Date: 2026-10-16 00:10:00.000000

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = "8b4e2f6a1c93"
down_revision = "3f1a9c2d7e10"
branch_labels = None
depends_on = None


def upgrade():
    # Hard business-rule: confirmed/active bookings of one vehicle never overlap.
    # SQLite has no exclusion constraints; there the vehicle row lock and the
    # availability check are the only guard.
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        "ALTER TABLE bookings ADD CONSTRAINT ex_booking_vehicle_overlap "
        "EXCLUDE USING gist (vehicle_id WITH =, daterange(start_date, end_date, '[)') WITH &&) "
        "WHERE (status IN ('confirmed', 'active'))"
    )


def downgrade():
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_booking_vehicle_overlap")
