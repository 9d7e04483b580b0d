import hashlib
import hmac
import secrets
from dataclasses import dataclass

# Same parameters passport-local-mongoose uses, so imported hashes verify.
PBKDF2_ITERATIONS = 25000
PBKDF2_KEYLEN = 512
SALT_BYTES = 32


@dataclass(frozen=True)
class PasswordHash:
    salt: str
    hashed: str


def hash_password(raw: str, salt: str | None = None) -> PasswordHash:
    salt = salt or secrets.token_hex(SALT_BYTES)
    digest = hashlib.pbkdf2_hmac(
        "sha256", raw.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS, dklen=PBKDF2_KEYLEN
    )
    return PasswordHash(salt=salt, hashed=digest.hex())


def verify_password(raw: str, *, salt: str, hashed: str) -> bool:
    candidate = hash_password(raw, salt=salt).hashed
    return hmac.compare_digest(candidate, hashed)


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)
