"""Errors raised by the sync engine."""


class RMSyncError(Exception):
    """Base class for sync failures; ``code`` is a stable machine-readable tag."""

    code = "SYNC_FAILED"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SyncInProgressError(RMSyncError):
    code = "SYNC_IN_PROGRESS"


class InvalidSyncStateError(RMSyncError):
    code = "INVALID_STATE"


class SyncConfigurationError(RMSyncError):
    """A precondition for reconciling is missing; the run is marked FAILED."""
    code = "CONFIGURATION"


class NoConnectionError(SyncConfigurationError):
    code = "NO_CONNECTION"


class NoMappingsError(SyncConfigurationError):
    code = "NO_MAPPINGS"


class MappingConflictError(RMSyncError):
    """A local or RM project is already mapped on this connection."""
    code = "MAPPING_CONFLICT"
