#!/usr/bin/env python3
"""
BlobStore Protocol - key-addressed storage for whole documents.

The transaction archive serializes its own JSON document and only needs to get
and put bytes at a path. Two implementations are provided: a local directory
(default, used by the CLI) and a remote HTTP blob service.
"""

import logging
from pathlib import Path
from typing import Protocol

import httpx

from .errors import ArchiveUnavailable
from .json_utils import write_bytes_atomic

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Protocol for key-addressed blob persistence."""

    def get(self, path: str) -> bytes | None:
        """
        Read the blob stored at ``path``.

        Returns:
            The blob contents, or None if nothing is stored there

        Raises:
            ArchiveUnavailable: If the storage backend cannot be reached
        """
        ...

    def put(self, path: str, data: bytes) -> None:
        """
        Replace the blob stored at ``path``.

        Raises:
            ArchiveUnavailable: If the write fails
        """
        ...


class LocalBlobStore:
    """
    BlobStore backed by a directory on disk.

    Paths are relative to ``root``; writes are atomic.
    """

    def __init__(self, root: Path):
        self.root = root

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Blob path escapes store root: {path}")
        return target

    def get(self, path: str) -> bytes | None:
        target = self._resolve(path)
        if not target.exists():
            return None
        try:
            return target.read_bytes()
        except OSError as e:
            raise ArchiveUnavailable(f"Cannot read {target}: {e}") from e

    def put(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        try:
            write_bytes_atomic(target, data)
        except OSError as e:
            raise ArchiveUnavailable(f"Cannot write {target}: {e}") from e


class HttpBlobStore:
    """
    BlobStore backed by a remote HTTP object store.

    ``GET {base_url}/{path}`` reads a blob (404 means absent) and
    ``PUT {base_url}/{path}`` replaces it, both with a bearer token.
    """

    def __init__(self, base_url: str, token: str, timeout: float = 30.0, client: httpx.Client | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str) -> bytes | None:
        try:
            response = self._client.get(self._url(path), headers={**self._headers, "Cache-Control": "no-store"})
        except httpx.HTTPError as e:
            raise ArchiveUnavailable(f"Blob store unreachable: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ArchiveUnavailable(f"Blob store GET {path} returned HTTP {response.status_code}")
        return response.content

    def put(self, path: str, data: bytes) -> None:
        try:
            response = self._client.put(
                self._url(path),
                content=data,
                headers={**self._headers, "Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise ArchiveUnavailable(f"Blob store unreachable: {e}") from e

        if response.status_code >= 400:
            raise ArchiveUnavailable(f"Blob store PUT {path} returned HTTP {response.status_code}")
        logger.debug("Stored %d bytes at %s", len(data), path)
