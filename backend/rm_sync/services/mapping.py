"""Project mapping management for an RM connection."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from rm_sync.models.mapping import RMProjectMapping
from rm_sync.schemas.mapping import MappingCreate
from rm_sync.services.exceptions import MappingConflictError

log = logging.getLogger(__name__)


def list_mappings(db: Session, connection_id: int) -> List[RMProjectMapping]:
    return db.query(RMProjectMapping).filter(
        RMProjectMapping.connection_id == connection_id
    ).order_by(RMProjectMapping.id).all()


def get_mapping(db: Session, connection_id: int, mapping_id: int) -> Optional[RMProjectMapping]:
    return db.query(RMProjectMapping).filter(
        RMProjectMapping.id == mapping_id,
        RMProjectMapping.connection_id == connection_id
    ).first()


def _check_conflicts(db: Session, connection_id: int, requested: List[MappingCreate]) -> None:
    project_ids = [m.project_id for m in requested]
    rm_project_ids = [m.rm_project_id for m in requested]
    if len(set(project_ids)) != len(project_ids):
        raise MappingConflictError("The same project appears more than once")
    if len(set(rm_project_ids)) != len(rm_project_ids):
        raise MappingConflictError("The same RM project appears more than once")

    existing = db.query(RMProjectMapping).filter(
        RMProjectMapping.connection_id == connection_id,
        (RMProjectMapping.project_id.in_(project_ids)) | (RMProjectMapping.rm_project_id.in_(rm_project_ids))
    ).all()
    if not existing:
        return
    if len(requested) == 1:
        if any(m.project_id == requested[0].project_id for m in existing):
            raise MappingConflictError("This project is already mapped to an RM project")
        raise MappingConflictError("This RM project is already mapped to another project")
    raise MappingConflictError(f"{len(existing)} project(s) already mapped")


def create_mappings(db: Session, connection_id: int, requested: List[MappingCreate]) -> List[RMProjectMapping]:
    """
    Create all requested mappings in one transaction, or none.

    Raises:
        MappingConflictError: a project or RM project is already mapped, or repeated in the request
    """
    _check_conflicts(db, connection_id, requested)
    mappings = [
        RMProjectMapping(
            connection_id=connection_id,
            project_id=m.project_id,
            rm_project_id=m.rm_project_id,
            rm_project_name=m.rm_project_name,
            rm_project_code=m.rm_project_code or None,
        )
        for m in requested
    ]
    db.add_all(mappings)
    db.commit()
    for mapping in mappings:
        db.refresh(mapping)

    log.info(f"Created {len(mappings)} RM project mapping(s) for connection {connection_id}")
    return mappings


def delete_mapping(db: Session, mapping: RMProjectMapping) -> None:
    """Remove a mapping; its synced records go with it."""
    log.info(f"Deleting RM project mapping {mapping.id} ({mapping.project_id} -> {mapping.rm_project_id})")
    db.delete(mapping)
    db.commit()
