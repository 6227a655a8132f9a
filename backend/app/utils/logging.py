"""Structured logging for document operations."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredOperationLogger:
    """Structured logger for operations that cross a collaborator boundary."""

    def log_operation(
        self,
        trace_id: str,
        operation: str,
        outcome: str,
        latency_ms: float,
        kind: str | None = None,
        document_id: str | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log one operation with structured data."""
        log_data: dict[str, Any] = {
            "trace_id": trace_id,
            "operation": operation,
            "kind": kind,
            "document_id": document_id,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Document operation: {operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
