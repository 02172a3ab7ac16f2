"""Log context tracking using contextvars.

Request handlers bind a request ID and the acting user; background transcode
tasks bind the job they are polling. Anything bound here is merged into every
structlog event emitted from the same task.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
job_id_var: ContextVar[str | None] = ContextVar("job_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def set_user_id(user_id: str | None) -> None:
    """Set the acting user for the current context.

    Args:
        user_id: The learner or instructor making the request, if known.
    """
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_trace_id() -> str | None:
    """Get the current trace ID."""
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the distributed trace ID for the current context.

    Args:
        trace_id: Trace ID taken from the inbound tracing headers.
    """
    trace_id_var.set(trace_id)


def get_job_id() -> str | None:
    """Get the transcode job bound to the current task.

    Returns:
        The job ID, or None outside a polling task.
    """
    return job_id_var.get()


def set_job_id(job_id: str | None) -> None:
    """Bind a transcode job to the current task.

    Args:
        job_id: Job ID returned by the transcode service for an upload.
    """
    job_id_var.set(job_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary.

    Returns:
        Dictionary with whichever of request_id, user_id, trace_id and
        job_id are bound.
    """
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    trace_id = get_trace_id()
    if trace_id:
        context["trace_id"] = trace_id

    job_id = get_job_id()
    if job_id:
        context["job_id"] = job_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent leakage between requests.
    """
    request_id_var.set("")
    user_id_var.set(None)
    trace_id_var.set(None)
    job_id_var.set(None)
