"""
Activity Logger

DESIGN DECISION: Every ledger mutation and external call is logged
as a structured event. This provides:
1. Traceability of how a balance got where it is
2. Debugging capability for the startup catch-up pass
3. Visibility into failing AI / market data calls

The logger:
- Is synchronous, like the ledger it observes
- Only writes local structured log lines (nothing is persisted)
- Supports correlation IDs to group events of one user action
"""

from uuid import UUID, uuid4

import structlog

from wealthwise.models.activity import ActivityEvent, ActivitySeverity


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


class ActivityLogger:
    """
    Central activity logging service.
    
    Keeps the most recent events in memory so callers (and tests)
    can inspect what just happened.
    """
    
    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("wealthwise")
        self._history: list[ActivityEvent] = []
        self._history_size = history_size
    
    @property
    def recent_events(self) -> list[ActivityEvent]:
        """Most recent events, oldest first."""
        return list(self._history)
    
    def log(self, event: ActivityEvent) -> None:
        """Log an activity event."""
        log_dict = event.to_log_dict()
        
        if event.severity == ActivitySeverity.ERROR:
            self._logger.error("activity_event", **log_dict)
        elif event.severity == ActivitySeverity.WARNING:
            self._logger.warning("activity_event", **log_dict)
        elif event.severity == ActivitySeverity.DEBUG:
            self._logger.debug("activity_event", **log_dict)
        else:
            self._logger.info("activity_event", **log_dict)
        
        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[: len(self._history) - self._history_size]
    
    def events_for(self, correlation_id: UUID) -> list[ActivityEvent]:
        """All remembered events that share a correlation ID."""
        return [e for e in self._history if e.correlation_id == correlation_id]


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.
    
    Use this at the start of a user action (or the startup catch-up)
    and pass it through all subsequent operations.
    """
    return uuid4()
