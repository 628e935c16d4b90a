"""
Activity metrics as log lines.

A metric is one INFO line on the ``chatblocks.metrics`` logger:

    [METRIC] [alice@example.com] tool_call tool_name=createDocument

Only metadata goes into a metric: counts, sizes, ids of models and tools.
Prompts, documents, tool arguments and error text never do. Values that are
not plain scalars are dropped rather than rendered.

Metrics are off unless FEATURE_METRICS_LOGGING_ENABLED is set.
"""

import logging
from enum import Enum
from typing import Any, Optional, Union

from chatblocks.core.log_sanitizer import sanitize_for_logging
from chatblocks.modules.config.config_manager import config_manager

logger = logging.getLogger("chatblocks.metrics")

_SCALARS = (str, int, float, bool)


class MetricEvent(str, Enum):
    CHAT_TURN = "chat_turn"
    LLM_CALL = "llm_call"
    TOOL_CALL = "tool_call"
    DOCUMENT_SAVED = "document_saved"
    SUGGESTIONS_SAVED = "suggestions_saved"
    CHAT_DELETED = "chat_deleted"
    ERROR = "error"


def _enabled() -> bool:
    return config_manager.app_settings.feature_metrics_logging_enabled


def format_metric(event: Union[MetricEvent, str], user_email: Optional[str] = None, **metadata: Any) -> str:
    """Render a metric line without emitting it.

    Raises:
        ValueError: ``event`` is not a known metric event
    """
    event = MetricEvent(event)
    user = sanitize_for_logging(user_email) if user_email else "unknown"
    fields = " ".join(
        f"{key}={sanitize_for_logging(value)}"
        for key, value in metadata.items()
        if value is None or isinstance(value, _SCALARS)
    )
    line = f"[METRIC] [{user}] {event.value}"
    return f"{line} {fields}" if fields else line


def log_metric(event: Union[MetricEvent, str], user_email: Optional[str] = None, **metadata: Any) -> None:
    """Emit a metric line if metrics are enabled."""
    if not _enabled():
        return
    logger.info(format_metric(event, user_email, **metadata))
