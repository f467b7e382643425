"""Data management package for the verification engine.

Provides storage adapters and schemas for:
- Entities (Entity) - schools, students, requests and colleges under verification
- Verification logs (VerificationLog) - append-only audit trail

Storage adapters:
- EntityStore: Kind-scoped entity persistence with optimistic versioning
- VerificationLogStore: Append-only log persistence with reporting aggregates
"""

from verification_system.data_management.entity_store import EntityStore
from verification_system.data_management.verification_log_store import (
    VerificationLogStore,
)

__all__ = [
    "EntityStore",
    "VerificationLogStore",
]
