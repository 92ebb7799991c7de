#!/usr/bin/env python3
"""
Token Vault

Encrypted at-rest storage of the Monzo OAuth credentials in cookies.

Each of the three values (access token, refresh token, absolute expiry) is
encrypted independently with AES-GCM under a process-wide key and written to
its own cookie. The cookie name is bound as associated data so ciphertexts
cannot be swapped between slots.
"""

import base64
import binascii
import logging
import os
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..core.json_utils import read_json, write_json
from .models import TokenRecord

logger = logging.getLogger(__name__)

COOKIE_PREFIX = "monzo_"
ACCESS_TOKEN_COOKIE = f"{COOKIE_PREFIX}at"
REFRESH_TOKEN_COOKIE = f"{COOKIE_PREFIX}rt"
EXPIRES_AT_COOKIE = f"{COOKIE_PREFIX}exp"

NONCE_BYTES = 12


@dataclass(frozen=True)
class CookieOptions:
    """Attributes a browser-facing cookie store applies to a value."""

    max_age: int
    http_only: bool = True
    secure: bool = False
    same_site: str = "lax"
    path: str = "/"


class CookieJar(Protocol):
    """Minimal cookie store the vault writes through."""

    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str, options: CookieOptions) -> None: ...

    def delete(self, name: str) -> None: ...


class MemoryCookieJar:
    """In-process cookie jar honouring ``max_age``."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._values: dict[str, tuple[str, CookieOptions, float]] = {}

    def get(self, name: str) -> str | None:
        entry = self._values.get(name)
        if entry is None:
            return None
        value, _options, expires = entry
        if expires <= self._clock():
            del self._values[name]
            return None
        return value

    def set(self, name: str, value: str, options: CookieOptions) -> None:
        self._values[name] = (value, options, self._clock() + options.max_age)

    def delete(self, name: str) -> None:
        self._values.pop(name, None)

    def options(self, name: str) -> CookieOptions | None:
        entry = self._values.get(name)
        return entry[1] if entry else None


class FileCookieJar:
    """
    Cookie jar persisted as a JSON file, for command-line use.

    Expired cookies are treated as absent. The file is created with owner-only
    permissions.
    """

    def __init__(self, path: Path, clock: Callable[[], float] = time.time):
        self.path = path
        self._clock = clock

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cookie file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        write_json(self.path, data)
        os.chmod(self.path, 0o600)

    def get(self, name: str) -> str | None:
        entry = self._read().get(name)
        if not isinstance(entry, dict):
            return None
        try:
            expires = float(entry.get("expires", 0))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring cookie {name} with unreadable expiry in {self.path}")
            return None
        if expires <= self._clock():
            return None
        value = entry.get("value")
        return value if isinstance(value, str) else None

    def set(self, name: str, value: str, options: CookieOptions) -> None:
        data = self._read()
        data[name] = {
            "value": value,
            "expires": self._clock() + options.max_age,
            "options": asdict(options),
        }
        self._write(data)

    def delete(self, name: str) -> None:
        data = self._read()
        if name in data:
            del data[name]
            self._write(data)


def key_from_hex(hex_key: str | None) -> bytes:
    """
    Decode the configured encryption key.

    Raises:
        ValueError: If the key is missing or not 32, 48 or 64 hex characters
    """
    if not hex_key:
        raise ValueError("TOKEN_ENCRYPTION_KEY is not configured")
    try:
        key = bytes.fromhex(hex_key.strip())
    except ValueError as e:
        raise ValueError("TOKEN_ENCRYPTION_KEY must be hex encoded") from e
    if len(key) not in (16, 24, 32):
        raise ValueError("TOKEN_ENCRYPTION_KEY must be 32, 48 or 64 hex characters")
    return key


class TokenVault:
    """
    TokenStore implementation over a cookie jar.

    ``load`` never raises: missing, expired, tampered or foreign values all
    read as "no stored session".
    """

    def __init__(
        self,
        jar: CookieJar,
        key: bytes,
        secure: bool = False,
        max_age_days: int = 90,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if len(key) not in (16, 24, 32):
            raise ValueError("AES-GCM key must be 128/192/256-bit")
        self._jar = jar
        self._aead = AESGCM(key)
        self._clock = clock
        self.options = CookieOptions(
            max_age=max_age_days * 24 * 60 * 60,
            http_only=True,
            secure=secure,
            same_site="lax",
            path="/",
        )

    def _encrypt(self, name: str, plaintext: str) -> str:
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), name.encode("ascii"))
        return base64.b64encode(nonce + sealed).decode("ascii")

    def _decrypt(self, name: str, value: str) -> str:
        raw = base64.b64decode(value, validate=True)
        nonce, sealed = raw[:NONCE_BYTES], raw[NONCE_BYTES:]
        return self._aead.decrypt(nonce, sealed, name.encode("ascii")).decode("utf-8")

    def save(self, access_token: str, refresh_token: str, expires_in_seconds: int) -> None:
        """Encrypt and store the three credential values."""
        expires_at = self._clock() + timedelta(seconds=expires_in_seconds)
        self._jar.set(ACCESS_TOKEN_COOKIE, self._encrypt(ACCESS_TOKEN_COOKIE, access_token), self.options)
        self._jar.set(REFRESH_TOKEN_COOKIE, self._encrypt(REFRESH_TOKEN_COOKIE, refresh_token), self.options)
        self._jar.set(EXPIRES_AT_COOKIE, self._encrypt(EXPIRES_AT_COOKIE, expires_at.isoformat()), self.options)

    def load(self) -> TokenRecord | None:
        """Decrypt the stored credentials, or None if any value is unusable."""
        values = {}
        for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, EXPIRES_AT_COOKIE):
            stored = self._jar.get(name)
            if not stored:
                return None
            try:
                values[name] = self._decrypt(name, stored)
            except (InvalidTag, binascii.Error, ValueError, UnicodeDecodeError):
                logger.warning("Stored token cookie %s could not be decrypted; ignoring session", name)
                return None

        try:
            expires_at = datetime.fromisoformat(values[EXPIRES_AT_COOKIE])
        except ValueError:
            return None
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        return TokenRecord(
            access_token=values[ACCESS_TOKEN_COOKIE],
            refresh_token=values[REFRESH_TOKEN_COOKIE],
            expires_at=expires_at,
        )

    def clear(self) -> None:
        """Remove all stored credential cookies."""
        for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, EXPIRES_AT_COOKIE):
            self._jar.delete(name)
