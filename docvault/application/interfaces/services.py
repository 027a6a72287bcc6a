"""
Service interfaces (ports) for the application layer.

These protocols define the contracts the services depend on.
Following Dependency Inversion Principle (DIP).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from docvault.domain.enums import Capability
    from docvault.domain.value_objects import CallerIdentity


class IHashService(Protocol):
    """Protocol for content hash computation (DIP)"""

    def compute_hash(self, data: bytes) -> str:
        """Hex digest of the given bytes"""
        ...


class IPermissionChecker(Protocol):
    """What the catalog and token manager need from the permission engine"""

    async def require(
        self, document_id: str, caller: CallerIdentity, required: Capability
    ) -> None:
        """Raise Forbidden unless caller holds the capability"""
        ...


class ICacheService(Protocol):
    """Protocol for the optional permission-check cache"""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def delete_pattern(self, pattern: str) -> int: ...
