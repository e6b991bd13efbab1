"""Audit log model for tracking dues and credit lifecycle events."""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """Audit log entry for tracking changes to dues years, payments and credit.

    Records who (actor) did what (action) to which entity (entity_type, entity_id)
    and optional field snapshots (changes).
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(String(50), index=False)
    """Entity type being audited: "dues_year", "transaction", "credit"."""

    entity_id: Mapped[str] = mapped_column(String(100), index=False)
    """Identifier of the audited entity (row id or transaction reference)."""

    action: Mapped[str] = mapped_column(String(50), index=False)
    """Action performed: "open", "payment", "reverse", "adjust", "reconcile"."""

    actor: Mapped[str | None] = mapped_column(String(100), nullable=True, index=False)
    """User who performed the action. None for system actions."""

    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True, index=False)
    """Optional JSON snapshot of changed fields: {"credit_balance": 1500, "months": [4, 5]}."""

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, entity_type={self.entity_type}, entity_id={self.entity_id}, "
            f"action={self.action}, actor={self.actor}, created_at={self.created_at})>"
        )


__all__ = ["AuditLog"]
