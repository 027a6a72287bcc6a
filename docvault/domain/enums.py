"""Domain enumerations for DocVault."""

from enum import Enum

from docvault.domain.exceptions import ValidationException


class DocumentStatus(str, Enum):
    """Document lifecycle status"""

    DRAFT = "draft"
    PUBLISHED = "published"
    DELETED = "deleted"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


# DELETED is terminal: no entry for it.
ALLOWED_STATUS_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.DRAFT: frozenset({DocumentStatus.PUBLISHED, DocumentStatus.DELETED}),
    DocumentStatus.PUBLISHED: frozenset({DocumentStatus.DRAFT, DocumentStatus.DELETED}),
}


class Capability(str, Enum):
    """
    Document capability levels.

    Capabilities form a total order: READ < WRITE < ADMIN.
    Holding a capability satisfies every lower one.
    """

    READ = "read"
    WRITE = "write"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _CAPABILITY_RANK[self]

    def satisfies(self, required: "Capability") -> bool:
        """Check whether this capability covers the required one"""
        return self.rank >= required.rank

    @classmethod
    def parse(cls, value: "Capability | str") -> "Capability":
        """Capability from its name; unknown names raise ValidationException"""
        try:
            return cls(value)
        except ValueError:
            raise ValidationException(f"Unknown capability '{value}'", "capability") from None

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [capability.value for capability in cls]


_CAPABILITY_RANK = {Capability.READ: 1, Capability.WRITE: 2, Capability.ADMIN: 3}


class TokenStatus(str, Enum):
    """Download token state machine: ISSUED -> CONSUMED | EXPIRED"""

    ISSUED = "issued"
    CONSUMED = "consumed"
    EXPIRED = "expired"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


class UserRole(str, Enum):
    """Role carried by a verified caller identity"""

    USER = "user"
    ADMIN = "admin"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [role.value for role in cls]
