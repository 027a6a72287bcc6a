from datetime import datetime

from pydantic import BaseModel, ConfigDict

from docvault.domain.enums import DocumentStatus


class DocumentResponse(BaseModel):
    """Schema for document responses"""

    id: str
    owner_id: str
    status: DocumentStatus
    latest_version_id: str | None
    latest_version_number: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditEntryResponse(BaseModel):
    """Schema for document audit trail entries"""

    id: str
    document_id: str
    entity_type: str
    action: str
    actor_id: str | None
    details: dict
    performed_at: datetime

    model_config = ConfigDict(from_attributes=True)
