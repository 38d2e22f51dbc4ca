"""Service hook execution for the daemon.

This module provides the HookExecutor class responsible for invoking a single
service lifecycle hook (``init``, ``handle_event`` or ``shutdown``). It handles
sync and async hooks, optional timeouts, and converts exceptions into
``ServiceFailure`` records so one malfunctioning service cannot take the
daemon down.

Key Features:
- Uniform invocation of coroutine and plain hook methods
- Optional per-call timeout via ``asyncio.timeout``
- Exception capture and conversion to failure records
- Timing information at trace level
"""

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

import arrow
from loguru import logger

from .core import EventType, ServiceProtocol
from .enums import ServiceHook
from .models import ServiceFailure

FailureCallback = Callable[[ServiceFailure], None]


class HookExecutor:
    """Invokes service hooks and reports their failures.

    The executor never raises for errors coming from service code. Every
    failure is logged and passed to ``on_failure``. Cancellation of the
    calling task is propagated untouched.

    Attributes:
        timeout: Upper bound in seconds for one hook call, or None
    """

    def __init__(self, on_failure: FailureCallback, timeout: float | None = None):
        """Initialize the executor.

        Args:
            on_failure: Called once for every failed or timed out hook call
            timeout: Upper bound in seconds for one hook call. None disables it.
        """
        self.timeout = timeout
        self._on_failure = on_failure

    async def call(self, service: ServiceProtocol, hook: ServiceHook, *args: Any, event_type: EventType | None = None) -> bool:
        """Invoke ``hook`` on ``service`` with ``args``.

        Args:
            service: The service to call
            hook: Which lifecycle hook to invoke
            *args: Positional arguments for the hook
            event_type: Type of the delivered event, for handle_event calls

        Returns:
            bool: True if the hook returned normally, False if it failed
        """
        func = getattr(service, hook.value)
        start_time = arrow.utcnow().float_timestamp

        deadline = asyncio.timeout(self.timeout)
        try:
            async with deadline:
                result = func(*args)
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            self.report_failure(service, hook, e, event_type, timed_out=deadline.expired())
            return False

        elapsed_ms = (arrow.utcnow().float_timestamp - start_time) * 1000
        logger.trace(f"{service.name}.{hook.value} completed in {elapsed_ms:.1f}ms")
        return True

    def report_failure(
        self,
        service: ServiceProtocol,
        hook: ServiceHook,
        e: Exception,
        event_type: EventType | None = None,
        timed_out: bool = False,
    ) -> None:
        """Log a hook failure and hand the failure record to the callback.

        Also used by the daemon for failures detected outside of ``call``.
        """
        if timed_out:
            e = TimeoutError(f"{hook.value} did not complete within {self.timeout}s")
            logger.error(f"{service.name}.{hook.value} timed out after {self.timeout}s")
        else:
            logger.opt(exception=e).error(f"{service.name}.{hook.value} raised {type(e).__name__}: {e}")

        failure = ServiceFailure.from_exception(service.id, service.name, hook, e, event_type=event_type)
        try:
            self._on_failure(failure)
        except Exception as callback_error:
            logger.opt(exception=callback_error).error(f"Failure callback raised while reporting {service.name}.{hook.value}")
