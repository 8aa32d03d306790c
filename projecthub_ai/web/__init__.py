"""HTTP surface."""

from projecthub_ai.web.app import create_app

__all__ = ["create_app"]
