"""Local identity provider: email/password accounts plus guest sign-in.

Accounts live in ``<workspace>/auth/users.json`` with PBKDF2-SHA256 hashes and
a per-user salt. The signed-in identity is kept in ``session.json`` next to
it so separate CLI invocations share one login.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import re
import secrets
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = [
    "GUEST_NAME",
    "AuthError",
    "Identity",
    "LocalIdentityProvider",
]

GUEST_NAME = "Convidado"
_USERS_FILE = "users.json"
_SESSION_FILE = "session.json"
_ITERATIONS = 200_000
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

logger = logging.getLogger("globalmind_quiz.auth")


class AuthError(RuntimeError):
    """Raised when registration or sign-in is rejected."""


@dataclass(frozen=True)
class Identity:
    email: Optional[str]
    display_name: str
    is_guest: bool = False


def _hash_password(password: str, salt: bytes) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, _ITERATIONS
    )
    return digest.hex()


def _validate_credentials(email: str, password: str) -> str:
    normalized = email.strip().lower()
    if not _EMAIL_RE.match(normalized):
        raise AuthError("Por favor, insira um email válido.")
    if not password:
        raise AuthError("A senha é obrigatória.")
    return normalized


class LocalIdentityProvider:
    """File-backed accounts for a single machine."""

    def __init__(self, directory: Path) -> None:
        self._dir = directory
        self._users_path = directory / _USERS_FILE
        self._session_path = directory / _SESSION_FILE

    @property
    def directory(self) -> Path:
        return self._dir

    def register(
        self, email: str, password: str, *, display_name: str | None = None
    ) -> Identity:
        normalized = _validate_credentials(email, password)
        users = self._load_users()
        if normalized in users:
            raise AuthError(f"Já existe uma conta para {normalized}.")
        salt = secrets.token_bytes(16)
        name = (display_name or "").strip() or normalized.split("@", 1)[0]
        users[normalized] = {
            "display_name": name,
            "salt": salt.hex(),
            "hash": _hash_password(password, salt),
            "iterations": _ITERATIONS,
        }
        self._write_json(self._users_path, users)
        logger.info("Registered account", extra={"email": normalized})
        return Identity(email=normalized, display_name=name)

    def sign_in(self, email: str, password: str) -> Identity:
        normalized = _validate_credentials(email, password)
        record = self._load_users().get(normalized)
        if record is None or not self._verify(record, password):
            logger.warning("Rejected sign-in", extra={"email": normalized})
            raise AuthError("Email ou senha incorretos.")
        identity = Identity(
            email=normalized, display_name=str(record["display_name"])
        )
        self._store_session(identity)
        return identity

    def sign_in_guest(self) -> Identity:
        identity = Identity(email=None, display_name=GUEST_NAME, is_guest=True)
        self._store_session(identity)
        return identity

    def sign_out(self) -> bool:
        if not self._session_path.exists():
            return False
        self._session_path.unlink()
        logger.info("Signed out")
        return True

    def current_user(self) -> Optional[Identity]:
        if not self._session_path.exists():
            return None
        try:
            data = json.loads(self._session_path.read_text(encoding="utf-8"))
            return Identity(
                email=data.get("email"),
                display_name=str(data["display_name"]),
                is_guest=bool(data.get("is_guest", False)),
            )
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.error(
                "Discarding unreadable session file",
                extra={"path": self._session_path, "error": str(exc)},
            )
            return None

    def _verify(self, record: Dict[str, Any], password: str) -> bool:
        try:
            salt = bytes.fromhex(str(record["salt"]))
            iterations = int(record.get("iterations", _ITERATIONS))
            expected = str(record["hash"])
        except (KeyError, ValueError) as exc:
            raise AuthError("Conta corrompida; registre-se novamente.") from exc
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), salt, iterations
        ).hex()
        return hmac.compare_digest(digest, expected)

    def _store_session(self, identity: Identity) -> None:
        self._write_json(self._session_path, asdict(identity))
        logger.info(
            "Signed in",
            extra={"email": identity.email, "guest": identity.is_guest},
        )

    def _load_users(self) -> Dict[str, Dict[str, Any]]:
        if not self._users_path.exists():
            return {}
        try:
            data = json.loads(self._users_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise AuthError(
                f"Não foi possível ler {self._users_path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise AuthError(f"{self._users_path} deve conter um objeto JSON.")
        return data

    def _write_json(self, path: Path, payload: object) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            "w", delete=False, encoding="utf-8", dir=str(path.parent)
        )
        try:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
            handle.flush()
            os.fsync(handle.fileno())
        finally:
            handle.close()
        os.chmod(handle.name, 0o600)
        os.replace(handle.name, path)
