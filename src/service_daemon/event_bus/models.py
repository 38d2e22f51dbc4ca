"""Data models for service failure reporting.

Failures are contained at the service boundary and reported out of band
through these records instead of unwinding the daemon.
"""

import arrow
from pydantic import BaseModel, Field, PrivateAttr

from .core import EventType, ServiceId
from .enums import ServiceHook


class ServiceFailure(BaseModel):
    """A failed or timed out service hook call."""

    model_config = {"use_enum_values": True}

    service_id: ServiceId
    service_name: str
    hook: ServiceHook
    event_type: EventType | None = None  # Set for handle_event failures
    error_type: str
    message: str
    occurred_at: str = Field(default_factory=lambda: arrow.utcnow().isoformat())  # ISO 8601 UTC timestamp

    _exception: BaseException | None = PrivateAttr(default=None)

    @classmethod
    def from_exception(
        cls,
        service_id: ServiceId,
        service_name: str,
        hook: ServiceHook,
        exc: BaseException,
        event_type: EventType | None = None,
    ) -> "ServiceFailure":
        """Build a failure record from a caught exception."""
        failure = cls(
            service_id=service_id,
            service_name=service_name,
            hook=hook,
            event_type=event_type,
            error_type=type(exc).__name__,
            message=str(exc) or type(exc).__name__,
        )
        failure._exception = exc
        return failure

    @property
    def exception(self) -> BaseException | None:
        """The original exception object, if still available."""
        return self._exception
