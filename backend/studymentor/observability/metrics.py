"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from studymentor.observability import tracing

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short-lived Opik trace if tracing is enabled."""
    client = tracing.get_opik_client()
    if not client:
        return

    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update(metadata)

    try:
        metric_trace = client.trace(name=f"metric:{name}", metadata=payload)
        metric_trace.end()
    except Exception as exc:  # pragma: no cover - metrics must not break planning
        logger.debug("Unable to record metric %s: %s", name, exc)


def log_metrics(prefix: str, values: Mapping[str, float | int], metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record several metrics sharing a prefix, e.g. ``daily_plan.validation.*``."""
    for key, value in values.items():
        log_metric(f"{prefix}.{key}", value, metadata)
