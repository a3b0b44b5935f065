from typing import Annotated, List
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from rm_sync.api.v1.endpoints.connections import require_connection
from rm_sync.auth import get_current_user_id
from rm_sync.connectors.rm_connector import RMApiError
from rm_sync.database import get_db
from rm_sync.schemas.rm import RMProject
from rm_sync.services.connection import fetch_rm_projects
from rm_sync.services.exceptions import SyncConfigurationError

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=List[RMProject])
async def list_rm_projects(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Active RM projects available for mapping."""
    connection = require_connection(db, user_id)
    try:
        return await fetch_rm_projects(connection)
    except SyncConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except RMApiError as e:
        log.error(f"Failed to fetch RM projects for user {user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
