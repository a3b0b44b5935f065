from typing import Annotated, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from rm_sync.auth import get_current_user_id
from rm_sync.database import get_db
from rm_sync.schemas.connection import (
    ConnectionCreate,
    ConnectionResponse,
    ConnectionUpdate,
    ConnectionValidation,
)
from rm_sync.services.connection import (
    create_connection,
    delete_connection,
    get_connection,
    set_auto_sync,
    validate_connection,
)

log = logging.getLogger(__name__)
router = APIRouter()


def require_connection(db: Session, user_id: str):
    connection = get_connection(db, user_id)
    if connection is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="RM connection not found"
        )
    return connection


@router.post("/", response_model=ConnectionResponse, status_code=status.HTTP_201_CREATED)
async def connect(
    request: ConnectionCreate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Validate an RM API token and store it encrypted, replacing any previous token."""
    try:
        return await create_connection(db, user_id, request.api_token.strip())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=Optional[ConnectionResponse])
async def read_connection(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """The caller's RM connection, or null when none exists."""
    return get_connection(db, user_id)


@router.get("/validate", response_model=ConnectionValidation)
async def validate(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    return ConnectionValidation(is_valid=await validate_connection(db, user_id))


@router.patch("/", response_model=ConnectionResponse)
async def update_connection(
    request: ConnectionUpdate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    connection = require_connection(db, user_id)
    return set_auto_sync(db, connection, request.auto_sync_enabled)


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Session = Depends(get_db),
):
    """Delete the connection together with its mappings, synced records and sync history."""
    delete_connection(db, require_connection(db, user_id))
    return None
