"""General helper utility functions."""

import hashlib
import json
import re
from typing import Any, Dict, List, Optional, Union

from projecthub_ai.logger import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_DIGITS_RE = re.compile(r"(\d+)")


def calculate_hash(content: str, algorithm: str = "sha256") -> str:
    """
    Calculate hash of a string.

    Args:
        content: Content to hash
        algorithm: Hash algorithm (sha256, md5, etc.)

    Returns:
        Hex digest of the hash
    """
    hash_func = getattr(hashlib, algorithm)()
    hash_func.update(content.encode("utf-8"))
    return hash_func.hexdigest()


def truncate_string(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate a string to a maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m {secs}s"


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object out of model output.

    Accepts bare JSON, JSON inside a markdown code fence, or JSON surrounded
    by prose (first ``{`` to last ``}``).

    Args:
        text: Raw model output

    Returns:
        The parsed object, or None if no JSON object could be recovered
    """
    if not text:
        return None

    candidates = [text.strip()]

    fence = _FENCE_RE.search(text)
    if fence:
        candidates.append(fence.group(1).strip())

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(data, dict):
            return data

    logger.debug("No JSON object found in model output", extra={"preview": truncate_string(text, 120)})
    return None


def natural_key(value: str) -> List[Union[int, str]]:
    """Sort key that orders ``step2`` before ``step10``."""
    return [int(part) if part.isdigit() else part.lower() for part in _DIGITS_RE.split(value)]
