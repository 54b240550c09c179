"""
rolesync

Top-level package for the cross-guild role synchronisation service.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal; importing the package must not connect to Discord or the DB.
