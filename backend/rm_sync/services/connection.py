"""RM connection store: credentials, project mappings and client construction."""

import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from rm_sync.connectors.rm_connector import RMAuthError, RMApiError, RMConnector
from rm_sync.schemas.rm import RMProject
from rm_sync.models.connection import RMConnection
from rm_sync.models.mapping import RMProjectMapping
from rm_sync.services.exceptions import SyncConfigurationError
from rm_sync.utils.encrypt import TokenDecryptionError, decrypt_data, encrypt_data

log = logging.getLogger(__name__)


def get_connection(db: Session, user_id: str) -> Optional[RMConnection]:
    return db.query(RMConnection).filter(RMConnection.user_id == user_id).first()


def get_active_mappings(db: Session, connection_id: int) -> List[RMProjectMapping]:
    return db.query(RMProjectMapping).filter(
        RMProjectMapping.connection_id == connection_id,
        RMProjectMapping.is_active == True  # noqa: E712
    ).order_by(RMProjectMapping.id).all()


def build_connector(connection: RMConnection) -> RMConnector:
    """Instantiate an RM client for a stored connection, decrypting its token."""
    try:
        token = decrypt_data(connection.api_token)
    except TokenDecryptionError as e:
        raise SyncConfigurationError(str(e)) from e
    return RMConnector({
        "api_token": token,
        "rm_user_id": connection.rm_user_id,
    })


async def create_connection(
    db: Session,
    user_id: str,
    api_token: str,
    connector_factory: Optional[Callable[[dict], RMConnector]] = None,
) -> RMConnection:
    """
    Validate a token against RM and store it encrypted.
    Replaces the credentials of an existing connection for the same user.
    """
    connector = (connector_factory or RMConnector)({"api_token": api_token})
    try:
        rm_user = await connector.validate_token()
    except RMAuthError as e:
        raise ValueError("Invalid RM API token - please check your token and try again") from e
    except RMApiError as e:
        raise ValueError(f"Failed to connect to RM API: {e}") from e
    finally:
        await connector.close()

    connection = get_connection(db, user_id)
    if connection is None:
        connection = RMConnection(user_id=user_id, auto_sync_enabled=False)
        db.add(connection)

    connection.api_token = encrypt_data(api_token)
    connection.rm_user_id = rm_user.id
    connection.rm_user_email = rm_user.email
    connection.rm_user_name = rm_user.display_name
    connection.is_active = True
    db.commit()
    db.refresh(connection)

    log.info(f"Stored RM connection {connection.id} for user {user_id} (RM user {rm_user.id})")
    return connection


async def validate_connection(db: Session, user_id: str) -> bool:
    """Check that the stored token is still accepted by RM."""
    connection = get_connection(db, user_id)
    if connection is None:
        return False
    try:
        async with build_connector(connection) as connector:
            await connector.validate_token()
    except (RMApiError, SyncConfigurationError) as e:
        log.warning(f"RM connection {connection.id} failed validation: {e}")
        return False
    return True


async def fetch_rm_projects(connection: RMConnection) -> List[RMProject]:
    """Active RM projects visible to the connection's token."""
    async with build_connector(connection) as connector:
        return await connector.fetch_projects()


def set_auto_sync(db: Session, connection: RMConnection, enabled: bool) -> RMConnection:
    connection.auto_sync_enabled = enabled
    db.commit()
    db.refresh(connection)
    log.info(f"Auto-sync {'enabled' if enabled else 'disabled'} for RM connection {connection.id}")
    return connection


def delete_connection(db: Session, connection: RMConnection) -> None:
    """Remove the connection with its mappings, synced records and sync logs."""
    log.info(f"Deleting RM connection {connection.id} for user {connection.user_id}")
    db.delete(connection)
    db.commit()
