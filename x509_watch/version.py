"""Version information."""

import os

__version__ = "0.3.0"


def get_revision() -> str:
    """Source revision baked in at build time through X509_WATCH_REVISION."""
    return os.getenv("X509_WATCH_REVISION", "unknown")
