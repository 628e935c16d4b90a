"""
Data models for LLM responses and related structures.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LLMResponse:
    """Final result of one streamed model step.

    ``tool_calls`` entries expose ``id``, ``type`` and
    ``function.name`` / ``function.arguments`` attributes, matching litellm's
    non-streaming response objects.
    """
    content: str
    tool_calls: Optional[List[Any]] = None
    model_used: str = ""
    finish_reason: str = "stop"
    usage: Dict[str, int] = field(default_factory=dict)

    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls."""
        return self.tool_calls is not None and len(self.tool_calls) > 0
