"""SQLAlchemy model for the append-only audit log."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from finguard.common.exceptions import AuditImmutableError
from finguard.common.models import Base, generate_uuid, utc_now


class AuditRecordModel(Base):
    __tablename__ = "audit_log"
    __table_args__ = (
        # Concurrent appends to one company's chain cannot both claim a sequence.
        UniqueConstraint("company_id", "sequence", name="uq_audit_company_sequence"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    # Not a foreign key: the history outlives a deleted company.
    company_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    principal_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    table_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    record_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    old_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    record_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    signature: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


@event.listens_for(AuditRecordModel, "before_update")
def _refuse_update(mapper, connection, target):
    raise AuditImmutableError("Audit records cannot be modified")


@event.listens_for(AuditRecordModel, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise AuditImmutableError("Audit records cannot be deleted")


class AuditChainHeadModel(Base):
    """Per-company pointer to the newest audit record.

    Appends bump ``sequence`` with a single UPDATE, so the row lock it takes
    serializes writers to one company's chain until their transaction ends.
    """
    __tablename__ = "audit_chain_heads"

    company_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    record_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
