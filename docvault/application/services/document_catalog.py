"""Document catalog: identity, status lifecycle and the latest-version pointer."""

import logging

from docvault.application.interfaces.services import IPermissionChecker
from docvault.domain.enums import Capability, DocumentStatus
from docvault.domain.exceptions import DocumentNotFound, NoVersionsYet
from docvault.domain.lifecycle import ensure_transition
from docvault.domain.value_objects import CallerIdentity
from docvault.infrastructure.persistence.models.document import Document
from docvault.infrastructure.persistence.models.document_version import DocumentVersion
from docvault.infrastructure.persistence.repositories.document_repo import DocumentRepository
from docvault.infrastructure.persistence.repositories.version_repo import VersionRepository
from docvault.shared.enums import AuditAction
from docvault.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)

_TRANSITION_ACTIONS = {
    DocumentStatus.PUBLISHED: AuditAction.PUBLISHED,
    DocumentStatus.DRAFT: AuditAction.UNPUBLISHED,
    DocumentStatus.DELETED: AuditAction.DELETED,
}


class DocumentCatalog:
    """Owns document identity and status transitions."""

    def __init__(
        self,
        document_repo: DocumentRepository,
        version_repo: VersionRepository,
        permissions: IPermissionChecker,
    ):
        self.documents = document_repo
        self.versions = version_repo
        self.permissions = permissions

    async def create(self, owner_id: str) -> Document:
        """Create a DRAFT document owned by owner_id"""
        document = await self.documents.create(
            Document(owner_id=owner_id, status=DocumentStatus.DRAFT, latest_version_number=0)
        )
        logger.info("Created document %s for owner %s", document.id, owner_id)
        return document

    async def get(self, document_id: str, *, include_deleted: bool = False) -> Document:
        document = await self.documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFound(document_id)
        if document.status == DocumentStatus.DELETED and not include_deleted:
            raise DocumentNotFound(document_id)
        return document

    async def _transition(
        self,
        document_id: str,
        acting_user: CallerIdentity,
        target: DocumentStatus,
        required: Capability,
    ) -> Document:
        document = await self.documents.get_for_update(document_id)
        if document is None or document.status == DocumentStatus.DELETED:
            raise DocumentNotFound(document_id)

        await self.permissions.require(document_id, acting_user, required)
        ensure_transition(document_id, document.status, target)

        if target == DocumentStatus.PUBLISHED:
            if await self.versions.count_committed(document_id) == 0:
                raise NoVersionsYet(document_id)

        previous = document.status
        await self.documents.change_status(document, target, _TRANSITION_ACTIONS[target])

        logger.info(
            "Document %s moved %s -> %s by %s",
            document_id,
            previous.value,
            target.value,
            acting_user.user_id,
        )
        return document

    @traced("catalog.publish")
    async def publish(self, document_id: str, acting_user: CallerIdentity) -> Document:
        """
        DRAFT -> PUBLISHED.

        Raises:
            Forbidden: Without WRITE
            AlreadyPublished: If already published
            NoVersionsYet: If the document has no committed version
        """
        return await self._transition(
            document_id, acting_user, DocumentStatus.PUBLISHED, Capability.WRITE
        )

    @traced("catalog.unpublish")
    async def unpublish(self, document_id: str, acting_user: CallerIdentity) -> Document:
        """PUBLISHED -> DRAFT. Raises NotPublished for a draft."""
        return await self._transition(
            document_id, acting_user, DocumentStatus.DRAFT, Capability.WRITE
        )

    @traced("catalog.delete")
    async def delete(self, document_id: str, acting_user: CallerIdentity) -> Document:
        """
        Soft delete. Requires ADMIN; stored blobs are left in place.

        A deleted document is terminal and reads as not found.
        """
        return await self._transition(
            document_id, acting_user, DocumentStatus.DELETED, Capability.ADMIN
        )

    async def advance_latest(self, document: Document, version: DocumentVersion) -> bool:
        """Point the document at a newer version; older versions never win"""
        moved = await self.documents.advance_latest(
            document, version.id, version.version_number
        )
        if moved:
            logger.debug(
                "Document %s latest version is now v%d", document.id, version.version_number
            )
        return moved

    async def list_owned(self, owner_id: str, skip: int = 0, limit: int = 100) -> list[Document]:
        return await self.documents.list_by_owner(owner_id, skip, limit)
