"""Exceptions raised by the EIP control loop and the gateway layer."""

from typing import Any, Dict, Optional


class EipError(Exception):
    """Base exception for EIP errors.

    Every error carries a ``context`` dict with the identifiers involved
    (eip id, port id, instance id, gateway operation) so callers can
    diagnose a failure without re-querying the cloud.
    """

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context: Dict[str, Any] = {
            key: value for key, value in context.items() if value is not None
        }


class NotFoundError(EipError):
    """Referenced remote resource does not exist."""

    pass


class ConflictError(EipError):
    """Operation would bind an already bound EIP or unbind a foreign one."""

    pass


class ConvergenceTimeoutError(EipError, TimeoutError):
    """Desired status was not observed before the polling deadline."""

    pass


class InvalidStatusError(EipError):
    """Polling observed a failure status instead of the desired one."""

    pass


class InvalidParameterError(EipError, ValueError):
    """Caller-supplied argument rejected before any gateway call."""

    pass


class GatewayError(EipError):
    """Cloud gateway call failed."""

    def __init__(self, detail: str, operation: Optional[str] = None, **context: Any):
        super().__init__(detail, operation=operation, **context)
        self.operation = operation
