from datetime import datetime

from pydantic import BaseModel, ConfigDict

from docvault.domain.enums import Capability


class PermissionResponse(BaseModel):
    """Schema for permission grants"""

    id: str
    document_id: str
    grantee_id: str
    capability: Capability
    granted_by: str
    granted_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RevokeResponse(BaseModel):
    revoked: bool
