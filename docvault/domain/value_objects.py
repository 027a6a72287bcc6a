"""Domain value objects."""

import re
from dataclasses import dataclass

from docvault.domain.enums import UserRole
from docvault.domain.exceptions import MalformedChecksum, ValidationException

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class Checksum:
    """SHA-256 content checksum, normalized to lowercase hex."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise MalformedChecksum(repr(self.value))
        normalized = self.value.strip().lower()
        if not _SHA256_HEX.match(normalized):
            raise MalformedChecksum(self.value)
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CallerIdentity:
    """
    A caller identity already verified by the authentication layer.

    This core never authenticates credentials; it only trusts what it is handed.
    """

    user_id: str
    role: UserRole = UserRole.USER

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValidationException("Caller identity requires a user id", "user_id")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def token_hint(token: str) -> str:
    """Shortened token for logs and error details (never the full secret)"""
    return f"{token[:6]}..." if len(token) > 6 else "***"
