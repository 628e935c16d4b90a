"""Customization hook applied to every model call made through the gateway."""

from typing import Any, Dict


class ModelMiddleware:
    """Pass-through middleware.

    Subclass and override to rewrite outgoing request parameters
    (``messages``, sampling options) or to post-process generated text.
    ``transform_text`` runs on every streamed text fragment, so it must be
    safe to apply piecewise.
    """

    def transform_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return params

    def transform_text(self, text: str) -> str:
        return text


class StripNullCharsMiddleware(ModelMiddleware):
    """Drop NUL characters some vendors emit in streamed text."""

    def transform_text(self, text: str) -> str:
        return text.replace("\x00", "")
