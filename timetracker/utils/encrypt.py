import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from timetracker.config import settings

log = logging.getLogger(__name__)


def get_fernet():
    """Returns the Fernet cipher for the configured encryption key."""
    return Fernet(settings.encryption_key.encode('utf-8'))


def encrypt_token(token: Optional[str]) -> Optional[str]:
    """Encrypts a ticket system token; empty tokens are stored as NULL."""
    if not token:
        return None
    return get_fernet().encrypt(token.encode('utf-8')).decode('utf-8')


def decrypt_token(encrypted_token: Optional[str]) -> Optional[str]:
    """Decrypts a stored token. Unreadable values count as no token."""
    if not encrypted_token:
        return None
    try:
        return get_fernet().decrypt(encrypted_token.encode('utf-8')).decode('utf-8')
    except InvalidToken:
        log.warning("Stored ticket system token could not be decrypted, treating as missing")
        return None
