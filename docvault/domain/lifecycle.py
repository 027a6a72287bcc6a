"""
Lifecycle rules for documents and download tokens.

Pure functions with no I/O, shared by the catalog and the token manager.
"""

from datetime import UTC, datetime, timedelta

from docvault.domain.enums import ALLOWED_STATUS_TRANSITIONS, DocumentStatus
from docvault.domain.exceptions import (AlreadyPublished, DocumentNotFound,
                                        InvalidStatusTransition, NotPublished,
                                        ValidationException)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC"""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def ensure_transition(document_id: str, current: DocumentStatus, target: DocumentStatus) -> None:
    """
    Validate a document status transition.

    Raises:
        DocumentNotFound: If the document is DELETED (terminal, unreadable)
        AlreadyPublished: If publishing an already published document
        NotPublished: If unpublishing a draft
        InvalidStatusTransition: For any other disallowed move
    """
    if current == DocumentStatus.DELETED:
        raise DocumentNotFound(document_id)
    if current == target == DocumentStatus.PUBLISHED:
        raise AlreadyPublished(document_id)
    if current == DocumentStatus.DRAFT and target == DocumentStatus.DRAFT:
        raise NotPublished(document_id)
    if target not in ALLOWED_STATUS_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransition(document_id, current.value, target.value)


def clamp_ttl(requested_seconds: int | None, default_seconds: int, max_seconds: int) -> int:
    """
    Resolve a token TTL.

    Absent TTL falls back to the default; anything above the maximum is
    silently clamped. Non-positive TTLs are rejected.
    """
    ttl = default_seconds if requested_seconds is None else requested_seconds
    if ttl <= 0:
        raise ValidationException("Token TTL must be positive", "ttl_seconds")
    return min(ttl, max_seconds)


def compute_expiry(ttl_seconds: int, now: datetime | None = None) -> datetime:
    return (now or utc_now()) + timedelta(seconds=ttl_seconds)


def is_expired(expires_at: datetime, now: datetime) -> bool:
    """A token is valid only while now < expires_at"""
    return ensure_aware(now) >= ensure_aware(expires_at)
