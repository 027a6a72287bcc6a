"""Domain layer: enums, value objects, lifecycle rules and exceptions."""

from docvault.domain.enums import Capability, DocumentStatus, TokenStatus, UserRole
from docvault.domain.value_objects import CallerIdentity, Checksum

__all__ = [
    "CallerIdentity",
    "Capability",
    "Checksum",
    "DocumentStatus",
    "TokenStatus",
    "UserRole",
]
