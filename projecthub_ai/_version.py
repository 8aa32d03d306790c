"""Version information for projecthub_ai."""

__version__ = "0.4.1"
__version_info__ = tuple(int(part) for part in __version__.split("."))
