"""Audit service for logging dues and credit lifecycle events."""

from sqlalchemy.orm import Session

from src.models.audit_log import AuditLog


class AuditService:
    """Service for audit log operations.

    Provides static method to create minimal audit log entries.
    """

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int | str,
        action: str,
        actor: str | None = None,
        changes: dict | None = None,
    ) -> AuditLog:
        """Create audit log entry (one-liner).

        The entry joins the caller's transaction; it is committed (or rolled
        back) together with the change it describes.

        Args:
            db: Database session
            entity_type: Type of entity ("dues_year", "transaction", "credit")
            entity_id: Row id or transaction reference of the entity
            action: Action performed ("open", "payment", "reverse", "adjust")
            actor: User who performed the action (optional)
            changes: Optional JSON snapshot of changed fields

        Returns:
            Created AuditLog object
        """
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            actor=actor,
            changes=changes,
        )
        db.add(audit)
        return audit


__all__ = ["AuditService"]
