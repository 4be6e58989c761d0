"""
Version information for the Job Board UI.

This file is the single source of truth for version numbers.
setup.py and the /health endpoint both read it.
"""

__version__ = "0.3.0"
__version_info__ = (0, 3, 0)

# Build metadata (set by CI/CD or manually)
BUILD_DATE = "2026-10-16"
GIT_COMMIT = None  # Will be set at runtime if available
