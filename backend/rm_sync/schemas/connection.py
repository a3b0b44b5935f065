from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ConnectionCreate(BaseModel):
    api_token: str = Field(..., min_length=1, max_length=500)


class ConnectionUpdate(BaseModel):
    auto_sync_enabled: bool


class ConnectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    rm_user_id: int
    rm_user_email: Optional[str] = None
    rm_user_name: Optional[str] = None
    is_active: bool
    auto_sync_enabled: bool
    last_sync_at: Optional[datetime] = None


class ConnectionValidation(BaseModel):
    is_valid: bool
