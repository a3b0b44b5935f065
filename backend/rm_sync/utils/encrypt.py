from cryptography.fernet import Fernet, InvalidToken
from rm_sync.config import settings


class TokenDecryptionError(ValueError):
    """Raised when a stored credential cannot be decrypted with the configured key."""


def get_fernet_key():
    """Returns the Fernet key from settings."""
    return Fernet(settings.encryption_key.encode('utf-8'))


def encrypt_data(data: str) -> str:
    """Encrypts a string using Fernet."""
    f = get_fernet_key()
    return f.encrypt(data.encode('utf-8')).decode('utf-8')


def decrypt_data(encrypted_data: str) -> str:
    """Decrypts a string using Fernet."""
    f = get_fernet_key()
    try:
        return f.decrypt(encrypted_data.encode('utf-8')).decode('utf-8')
    except InvalidToken as e:
        raise TokenDecryptionError("Stored RM API token could not be decrypted - reconnect the RM account") from e
