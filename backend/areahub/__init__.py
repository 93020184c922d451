"""AREA Hub backend.

Third-party account linking and automation execution tracking.
"""

from areahub import db

__version__ = "0.1.0"

__all__ = [
    "db",
    "__version__",
]
