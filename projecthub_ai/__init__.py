"""
ProjectHub AI - request orchestration and content safety for the ProjectHub marketplace.

This package gates every chat turn through a deterministic safety classifier,
quick-response matcher and credit meter before dispatching it to a language
model behind a bounded queue with automatic model fallback. It also generates
structured project guides and task roadmaps with a deterministic repair pass.
"""

from projecthub_ai._version import __version__, __version_info__
from projecthub_ai.config import settings
from projecthub_ai.logger import logger

__all__ = [
    "settings",
    "logger",
    "__version__",
    "__version_info__",
]
