"""
edgenode: persistence contracts

Purpose
- Canonical record shapes held by the storage collaborator. The store itself
  lives outside this package; only the records it hands over are modeled.
"""

from edgenode.persistence.records import PersistedConfigstate, PersistedDevice

__all__ = ["PersistedConfigstate", "PersistedDevice"]
