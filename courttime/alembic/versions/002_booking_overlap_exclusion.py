"""Reject overlapping active bookings on the same court at the database level

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

The booking service locks the court row while it checks for conflicts; this
exclusion constraint makes overlap impossible even for writers that bypass
the service. Intervals are half-open ('[)') so back-to-back bookings pass.
Cancelled bookings are excluded from the constraint.
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade():
    # btree_gist provides the gist operator class for court_id equality
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.execute("""
        ALTER TABLE bookings
        ADD CONSTRAINT ex_bookings_no_overlap
        EXCLUDE USING gist (
            court_id WITH =,
            tsrange(booking_date + start_time, booking_date + end_time, '[)') WITH &&
        )
        WHERE (status <> 'cancelled')
    """)


def downgrade():
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_no_overlap")
