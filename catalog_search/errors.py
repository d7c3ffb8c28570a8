"""Error taxonomy shared by the search paths and the dispatcher.

Only :class:`~catalog_search.dispatcher.SearchDispatcher` turns these into
routing decisions or the failure payload; the search paths raise them and
never swallow them.
"""
from __future__ import annotations

SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class SearchError(RuntimeError):
    """Base class for failures of a search path."""

    stage = "search"


class EngineRequestFailed(SearchError):
    """The search engine timed out, failed in transport or answered garbage."""

    stage = "engine"


class RelationalRequestFailed(SearchError):
    """The relational store could not execute the fallback query."""

    stage = "relational"


class ServiceUnavailable(SearchError):
    """Both the engine and the relational path failed for one request."""

    stage = "dispatcher"
    error_code = SERVICE_UNAVAILABLE


def describe_error(exc: BaseException) -> dict:
    """Flatten an exception into the ``{stage, kind, message}`` diagnostics entry."""

    return {
        "stage": getattr(exc, "stage", "unknown"),
        "kind": type(exc).__name__,
        "message": str(exc),
    }
