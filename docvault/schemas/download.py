from datetime import datetime

from pydantic import BaseModel, Field


class DownloadLinkResponse(BaseModel):
    """A freshly issued single-use download link"""

    token: str
    expires_at: datetime
    download_url: str
    document_id: str
    version_id: str


class ConsumedTokenResponse(BaseModel):
    """What a consumed token authorizes; storage_path is where the bytes live"""

    document_id: str
    version_id: str
    storage_path: str


class CleanupResponse(BaseModel):
    deleted_count: int = Field(ge=0)
