from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from rm_sync.services.project_matching import DEFAULT_MIN_SCORE


class MappingCreate(BaseModel):
    project_id: str = Field(..., min_length=1)
    rm_project_id: int = Field(..., gt=0)
    rm_project_name: str = Field(..., min_length=1)
    rm_project_code: Optional[str] = None


class MappingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: str
    rm_project_id: int
    rm_project_name: str
    rm_project_code: Optional[str] = None
    is_active: bool


class BulkMappingResponse(BaseModel):
    created: int
    mappings: List[MappingResponse]


class LocalProject(BaseModel):
    """A local project as known to the caller; the project catalogue lives outside this service."""
    id: str
    name: str


class SuggestionRequest(BaseModel):
    projects: List[LocalProject]
    min_score: float = Field(DEFAULT_MIN_SCORE, ge=0, le=1)
    auto_map_only: bool = False
