"""Strip common script-injection patterns from user supplied strings."""

import re
from typing import Any

_SCRIPT_RE = re.compile(r"<script\b[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_HANDLER_RE = re.compile(r"on\w+=\"[^\"]*\"", re.IGNORECASE)
_JS_URL_RE = re.compile(r"javascript:[^\"]*", re.IGNORECASE)


def sanitize_text(text: str) -> str:
    text = _SCRIPT_RE.sub("", text)
    text = _HANDLER_RE.sub("", text)
    return _JS_URL_RE.sub("", text)


def sanitize(value: Any) -> Any:
    """Recursively sanitize strings inside dicts and lists."""
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, dict):
        return {k: sanitize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [sanitize(v) for v in value]
    return value
