"""Error-tracking seam. The hosting platform forwards these to its tracker."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


class ErrorReporter(Protocol):
    def capture_exception(
        self,
        exc: BaseException,
        *,
        component: str,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...


class LoggingErrorReporter:
    """Report errors to the log, tagged with the component that raised them."""

    def capture_exception(
        self,
        exc: BaseException,
        *,
        component: str,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        logger.error(
            "[%s] %s: %s extra=%s",
            component,
            type(exc).__name__,
            exc,
            dict(extra or {}),
            exc_info=(type(exc), exc, exc.__traceback__),
        )
