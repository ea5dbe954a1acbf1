"""Context management for structured logging and tracing.

This module provides thread-safe context variables for propagating
operation context (request_id, eip_id, instance_id, action) through the
control loop, including into worker threads started by the dispatcher.
"""

import contextvars
from contextlib import contextmanager
from typing import Optional, Any, Dict
from opentelemetry import trace

# Context variables for operation tracking
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)
eip_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "eip_id", default=None
)
instance_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "instance_id", default=None
)
action_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "action", default=None
)

_VARS: Dict[str, contextvars.ContextVar] = {
    "request_id": request_id_var,
    "eip_id": eip_id_var,
    "instance_id": instance_id_var,
    "action": action_var,
}


def set_context(
    request_id: Optional[str] = None,
    eip_id: Optional[str] = None,
    instance_id: Optional[str] = None,
    action: Optional[str] = None,
) -> None:
    """Set context variables.

    Args:
        request_id: Identifier of the caller's request
        eip_id: EIP identifier
        instance_id: Instance the EIP is being bound to or unbound from
        action: Operation being performed (e.g., 'eip.associate')
    """
    if request_id is not None:
        request_id_var.set(request_id)
    if eip_id is not None:
        eip_id_var.set(eip_id)
    if instance_id is not None:
        instance_id_var.set(instance_id)
    if action is not None:
        action_var.set(action)


def get_context() -> Dict[str, Any]:
    """Get all current context values as a dictionary.

    Returns:
        Dictionary with all non-None context values
    """
    context = {}
    for key, var in _VARS.items():
        value = var.get()
        if value:
            context[key] = value
    return context


def clear_context() -> None:
    """Clear all context variables."""
    for var in _VARS.values():
        var.set(None)


@contextmanager
def operation_context(
    action: str,
    eip_id: Optional[str] = None,
    instance_id: Optional[str] = None,
    request_id: Optional[str] = None,
):
    """Context manager for setting operation context with automatic cleanup.

    This also sets the action as a span attribute if there's an active span.

    Example:
        with operation_context("eip.associate", eip_id="eip-1", instance_id="i-1"):
            logger.info("Associating EIP")
    """
    old_context = get_context()

    try:
        set_context(
            request_id=request_id,
            eip_id=eip_id,
            instance_id=instance_id,
            action=action,
        )

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("action", action)
            if eip_id:
                span.set_attribute("eip.id", eip_id)
            if instance_id:
                span.set_attribute("instance.id", instance_id)

        yield

    finally:
        # Restore old context
        clear_context()
        for key, value in old_context.items():
            _VARS[key].set(value)


def get_trace_context() -> Dict[str, str]:
    """Get current OpenTelemetry trace context.

    Returns:
        Dictionary with trace_id and span_id (if available)
    """
    context = {}

    span = trace.get_current_span()
    if span.is_recording():
        span_context = span.get_span_context()
        if span_context.is_valid:
            context["trace_id"] = format(span_context.trace_id, "032x")
            context["span_id"] = format(span_context.span_id, "016x")

    return context
