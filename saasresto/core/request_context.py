"""Per-request identity used to enrich log records."""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class RequestContext:
    request_id: str | None = None
    tenant_slug: str | None = None
    user_id: str | None = None


_EMPTY = RequestContext()
_CONTEXT: ContextVar[RequestContext] = ContextVar("saasresto_request_context", default=_EMPTY)


def current_context() -> RequestContext:
    return _CONTEXT.get()


def update_request_context(**fields: str | None) -> RequestContext:
    """Merge non-empty fields into the current context."""
    changes = {key: value for key, value in fields.items() if value is not None}
    context = replace(_CONTEXT.get(), **changes)
    _CONTEXT.set(context)
    return context


def clear_request_context() -> None:
    _CONTEXT.set(_EMPTY)
