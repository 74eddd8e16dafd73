"""
Audit Logger

DESIGN DECISION: Every write to a user's ledger is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. User can see history of their changes

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from budgetforge.models.audit import AuditEvent, AuditEventBuilder
from budgetforge.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entry_saved(
        self,
        entry_id: UUID,
        user_id: UUID,
        kind: str,
        amount: str,
        created: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.entry_saved(
            entry_id=entry_id,
            user_id=user_id,
            kind=kind,
            amount=amount,
            created=created,
            correlation_id=correlation_id,
        ))

    async def log_entry_deleted(
        self,
        entry_id: UUID,
        user_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.entry_deleted(
            entry_id=entry_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_category_saved(
        self,
        category_id: UUID,
        user_id: UUID,
        name: str,
        kind: str,
        created: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_saved(
            category_id=category_id,
            user_id=user_id,
            name=name,
            kind=kind,
            created=created,
            correlation_id=correlation_id,
        ))

    async def log_category_deleted(
        self,
        category_id: UUID,
        user_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_deleted(
            category_id=category_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_default_categories_seeded(
        self,
        user_id: UUID,
        names: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.default_categories_seeded(
            user_id=user_id,
            names=names,
            correlation_id=correlation_id,
        ))

    async def log_loan_saved(
        self,
        loan_id: UUID,
        user_id: UUID,
        kind: str,
        amount: str,
        created: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.loan_saved(
            loan_id=loan_id,
            user_id=user_id,
            kind=kind,
            amount=amount,
            created=created,
            correlation_id=correlation_id,
        ))

    async def log_loan_deleted(
        self,
        loan_id: UUID,
        user_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.loan_deleted(
            loan_id=loan_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        record_type: str,
        user_id: UUID,
        stage: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(
            record_type=record_type,
            user_id=user_id,
            stage=stage,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        record_type: str,
        user_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            record_type=record_type,
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_summary_computed(
        self,
        user_id: UUID,
        summary_type: str,
        entry_count: int,
        skipped: int,
        correlation_id: UUID,
    ) -> None:
        """Log a dashboard/analysis computation, and any records it had to drop."""
        await self.log(AuditEventBuilder.summary_computed(
            user_id=user_id,
            summary_type=summary_type,
            entry_count=entry_count,
            correlation_id=correlation_id,
        ))
        if skipped:
            await self.log(AuditEventBuilder.records_skipped(
                user_id=user_id,
                skipped=skipped,
                correlation_id=correlation_id,
            ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a form submission).
    Pass it through all subsequent operations.
    """
    return uuid4()
