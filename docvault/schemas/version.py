from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class InitiateUploadResponse(BaseModel):
    """Result of the first upload phase: where to put the bytes"""

    version_id: str
    document_id: str
    version_number: int = Field(ge=1)
    staging_target: str


class ConfirmUploadResponse(BaseModel):
    """Result of the second upload phase"""

    document_id: str
    version_id: str
    version_number: int = Field(ge=1)
    deduplicated: bool


class VersionResponse(BaseModel):
    """Schema for committed document versions"""

    id: str
    document_id: str
    version_number: int
    filename: str
    original_filename: str
    mime_type: str
    size: int
    storage_path: str
    checksum: str
    content_ref: str | None
    uploaded_by: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
