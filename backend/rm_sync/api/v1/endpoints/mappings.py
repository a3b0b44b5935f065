from typing import Annotated, List
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from rm_sync.api.v1.endpoints.connections import require_connection
from rm_sync.auth import get_current_user_id
from rm_sync.connectors.rm_connector import RMApiError
from rm_sync.database import get_db
from rm_sync.schemas.mapping import (
    BulkMappingResponse,
    MappingCreate,
    MappingResponse,
    SuggestionRequest,
)
from rm_sync.services.connection import fetch_rm_projects
from rm_sync.services.exceptions import MappingConflictError, SyncConfigurationError
from rm_sync.services.mapping import create_mappings, delete_mapping, get_mapping, list_mappings
from rm_sync.services.project_matching import (
    ProjectMatchSuggestion,
    auto_map_suggestions,
    suggest_matches,
)

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=List[MappingResponse])
async def read_mappings(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """All project mappings of the caller's connection."""
    connection = require_connection(db, user_id)
    return list_mappings(db, connection.id)


@router.post("/", response_model=MappingResponse, status_code=status.HTTP_201_CREATED)
async def create_mapping(
    mapping: MappingCreate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    connection = require_connection(db, user_id)
    try:
        return create_mappings(db, connection.id, [mapping])[0]
    except MappingConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)


@router.post("/bulk", response_model=BulkMappingResponse, status_code=status.HTTP_201_CREATED)
async def create_mappings_bulk(
    mappings: List[MappingCreate],
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Create several mappings at once (used to accept auto-map suggestions); all or nothing."""
    if not mappings:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No mappings given")
    connection = require_connection(db, user_id)
    try:
        created = create_mappings(db, connection.id, mappings)
    except MappingConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    return BulkMappingResponse(
        created=len(created),
        mappings=[MappingResponse.model_validate(m) for m in created]
    )


@router.post("/suggestions", response_model=List[ProjectMatchSuggestion])
async def suggest_mappings(
    request: SuggestionRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Suggest RM projects for the given local projects that are not mapped yet."""
    connection = require_connection(db, user_id)
    existing = list_mappings(db, connection.id)
    mapped_projects = {m.project_id for m in existing}
    mapped_rm_projects = {m.rm_project_id for m in existing}

    unmapped = [p for p in request.projects if p.id not in mapped_projects]
    if not unmapped:
        return []

    try:
        rm_projects = await fetch_rm_projects(connection)
    except SyncConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except RMApiError as e:
        log.error(f"Failed to fetch RM projects for user {user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    available = [p for p in rm_projects if p.id not in mapped_rm_projects]
    suggestions = suggest_matches(unmapped, available, request.min_score)
    if request.auto_map_only:
        return auto_map_suggestions(suggestions)
    return list(suggestions.values())


@router.delete("/{mapping_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_mapping(
    mapping_id: int,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Delete a mapping and the synced records tracked under it."""
    connection = require_connection(db, user_id)
    mapping = get_mapping(db, connection.id, mapping_id)
    if mapping is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mapping not found")
    delete_mapping(db, mapping)
    return None
