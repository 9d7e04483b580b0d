import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from camper.core.config import settings


def _derive_key(secret: str) -> bytes:
    # Fernet wants 32 url-safe base64 bytes; the configured secret is free-form
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


_fernet = Fernet(_derive_key(settings.session_secret.get_secret_value()))


def encrypt_token(token: str) -> str:
    return _fernet.encrypt(token.encode("utf-8")).decode("utf-8")


def decrypt_token(value: str, *, ttl: int | None = None) -> str | None:
    """
    Reverse encrypt_token. Returns None for tampered, foreign or (when ttl is
    given) too-old values instead of raising.
    """
    try:
        raw = _fernet.decrypt(value.encode("utf-8"), ttl=ttl)
    except (InvalidToken, ValueError):
        return None
    return raw.decode("utf-8")
