"""audit chain heads

Revision ID: 0002_audit_chain_heads
Revises: 0001_initial
Create Date: 2026-10-19 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_audit_chain_heads"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "audit_chain_heads",
        sa.Column("company_id", sa.String(36), primary_key=True),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("record_hash", sa.String(64), nullable=True),
    )
    # Point each existing chain at its newest record.
    op.execute(
        """
        INSERT INTO audit_chain_heads (company_id, sequence, record_hash)
        SELECT a.company_id, a.sequence, a.record_hash
        FROM audit_log a
        WHERE a.sequence = (
            SELECT MAX(b.sequence) FROM audit_log b WHERE b.company_id = a.company_id
        )
        """
    )


def downgrade() -> None:
    op.drop_table("audit_chain_heads")
