"""Opik traces around planning work; every helper is a no-op without a client."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional, Sequence

from studymentor.core.context import get_request_id, get_user_id
from studymentor.observability import client as opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def get_opik_client():
    return opik_client.get_opik_client()


def _trace_metadata(
    metadata: Optional[Dict[str, Any]],
    user_id: Optional[str],
    request_id: Optional[str],
) -> Dict[str, Any]:
    # None values are dropped so optional context (exam date, etc.) stays out of the UI.
    merged = {key: value for key, value in (metadata or {}).items() if value is not None}
    user_id = user_id or get_user_id()
    if user_id:
        merged.setdefault("user_id", str(user_id))
    request_id = request_id or get_request_id()
    if request_id:
        merged.setdefault("request_id", request_id)
    return merged


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    tags: Optional[Sequence[str]] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Wrap a block in an Opik trace named ``name``.

    User and request ids default to the ones bound by the request middleware.
    Exceptions are recorded on the trace and re-raised; the trace always closes
    with ``latency_ms`` in its metadata.
    """
    client = get_opik_client()
    if not client:
        yield None
        return

    started = perf_counter()
    opik_trace: Optional["Trace"] = None
    try:
        opik_trace = client.trace(
            name=name,
            metadata=_trace_metadata(metadata, user_id, request_id) or None,
            tags=list(tags) if tags else None,
        )
    except Exception as exc:  # pragma: no cover - tracing must not break planning
        logger.debug("Unable to start Opik trace %s: %s", name, exc)

    try:
        yield opik_trace
    except Exception as exc:
        if opik_trace:
            try:
                opik_trace.update(error_info={"exception_type": type(exc).__name__, "message": str(exc)})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if opik_trace:
            try:
                opik_trace.update(metadata={"latency_ms": round((perf_counter() - started) * 1000, 2)})
                opik_trace.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)
