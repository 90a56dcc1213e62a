"""Lazily created Opik client shared by tracing and metrics."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from studymentor.core.config import Settings, settings as default_settings

try:
    from opik import Opik
except ImportError:  # pragma: no cover
    Opik = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_lock = Lock()
_client: Optional["Opik"] = None
_attempted = False


def init_opik(config: Optional[Settings] = None) -> Optional["Opik"]:
    """Create the Opik client on first use.

    Planning tracing needs both OPIK_ENABLED and OPIK_API_KEY. Whatever the
    outcome, it is only decided once per process until ``reset_opik_client``.
    """
    global _client, _attempted

    config = config or default_settings
    with _lock:
        if _attempted:
            return _client
        _attempted = True
        _client = _build_client(config)
    return _client


def _build_client(config: Settings) -> Optional["Opik"]:
    if Opik is None or not config.opik_enabled:
        return None
    if not config.opik_api_key:
        logger.warning("OPIK_ENABLED is true but OPIK_API_KEY is missing; plan tracing disabled.")
        return None

    try:
        client = Opik(
            project_name=config.opik_project,
            workspace=config.opik_workspace,
            api_key=config.opik_api_key,
        )
    except Exception as exc:  # pragma: no cover - third-party init failure
        logger.warning("Failed to initialize Opik, plan tracing disabled: %s", exc)
        return None

    logger.info("Opik enabled (project=%s).", config.opik_project)
    return client


def get_opik_client() -> Optional["Opik"]:
    """The shared client, or None when tracing is off."""
    if _attempted:
        return _client
    return init_opik()


def reset_opik_client() -> None:
    """Forget the client so the next call re-reads settings."""
    global _client, _attempted

    with _lock:
        _client = None
        _attempted = False
