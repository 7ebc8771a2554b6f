"""
Ledger Event Logger

DESIGN DECISION: Every mutating ledger action is logged as a structured
event. This provides:
1. Traceability of who changed what in a group
2. Debugging capability when balances look wrong
3. Correlation IDs to tie together the steps of one user action

The logger writes to the local structured log only. It never raises:
a logging failure must not break a ledger operation.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from splitledger.models.events import LedgerEvent, LedgerEventBuilder


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


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at `level`.

    structlog's filter_by_level defers to the stdlib logger, so this is
    what actually decides which events are emitted.
    """
    logging.basicConfig(format="%(message)s", level=level.upper())


class EventLogger:
    """
    Central ledger event logger.

    Events are rendered as JSON through structlog, one line per event.
    """

    def __init__(self, logger_name: str = "splitledger"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: LedgerEvent) -> None:
        """
        Log a ledger event at the level matching its severity.
        """
        log_dict = event.to_log_dict()
        severity = event.severity.value

        try:
            if severity == "error":
                self._logger.error("ledger_event", **log_dict)
            elif severity == "warning":
                self._logger.warning("ledger_event", **log_dict)
            elif severity == "debug":
                self._logger.debug("ledger_event", **log_dict)
            else:
                self._logger.info("ledger_event", **log_dict)
        except Exception as e:
            # Logging must never take down a ledger operation
            logging.getLogger(__name__).warning("Failed to log ledger event: %s", e)

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        group_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure."""
        self.log(LedgerEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            group_id=group_id,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
