"""
edgenode: device registration and service configuration model

Purpose
- Package root. Defines public package-level metadata and import boundaries.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
