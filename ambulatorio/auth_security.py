from __future__ import annotations

from passlib.context import CryptContext

MIN_PASSWORD_LENGTH = 4

# pbkdf2: nessuna dipendenza nativa, verificabile anche su installazioni desktop
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Hash non riconosciuto (es. formato di versioni precedenti) -> False."""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False
