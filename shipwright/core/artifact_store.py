"""Content-addressed artifact store and per-run named slots.

Storage layout: {base_path}/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat

``ContentAddressedStore`` holds bytes keyed by digest.  ``ArtifactSlots``
layers the build hand-off on top: a slot name has exactly one producer per
run, and its payload is consumed exactly once.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from shipwright.core.hasher import sha256_hex
from shipwright.errors import (
    ArtifactConsumedError,
    ArtifactIntegrityError,
    ArtifactPublishError,
    HandoffError,
)
from shipwright.models.artifacts import ArtifactHandle, StoredArtifact

logger = logging.getLogger(__name__)


class ContentAddressedStore:
    """SHA-256 keyed, immutable artifact store.

    Storing the same content twice is a no-op.  There is no update or delete.

    Parameters
    ----------
    base_path:
        Root directory for artifact storage.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _extract_digest(content_address: str) -> str:
        return content_address.removeprefix("sha256:")

    def _artifact_path(self, sha256_digest: str) -> Path:
        return self._base / sha256_digest[:2] / sha256_digest[2:4] / f"{sha256_digest}.dat"

    def store(
        self,
        data: bytes,
        *,
        name: str = "",
        artifact_type: str = "binary",
        metadata: dict[str, Any] | None = None,
    ) -> StoredArtifact:
        """Store data and return its content-addressed metadata.

        If the content already exists, verifies it and leaves it untouched.
        """
        digest = sha256_hex(data)
        path = self._artifact_path(digest)

        if path.exists():
            if not self.verify(digest):
                raise ArtifactIntegrityError(
                    f"Existing artifact at {digest} failed integrity check"
                )
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        return StoredArtifact(
            content_address=f"sha256:{digest}",
            artifact_type=artifact_type,
            name=name or digest[:16],
            size_bytes=len(data),
            metadata=metadata or {},
        )

    def retrieve(self, content_address: str) -> bytes:
        """Retrieve artifact bytes by ``sha256:<hex>`` or bare hex digest."""
        path = self._artifact_path(self._extract_digest(content_address))
        if not path.exists():
            raise FileNotFoundError(f"Artifact not found: {content_address}")
        return path.read_bytes()

    def exists(self, content_address: str) -> bool:
        return self._artifact_path(self._extract_digest(content_address)).exists()

    def verify(self, content_address: str) -> bool:
        """Re-hash stored data and compare against the content address."""
        digest = self._extract_digest(content_address)
        path = self._artifact_path(digest)
        if not path.exists():
            return False
        return sha256_hex(path.read_bytes()) == digest


class ArtifactSlots:
    """Named publish/consume slots for one run.

    Slot state lives only as long as the run; nothing carries over between
    runs.

    Parameters
    ----------
    store:
        The content-addressed store holding the payload bytes.
    run_id:
        The run these slots belong to (used in messages and logs).
    """

    def __init__(self, store: ContentAddressedStore, run_id: str) -> None:
        self._store = store
        self.run_id = run_id
        self._handles: dict[str, ArtifactHandle] = {}
        self._consumed: set[str] = set()

    def publish(self, name: str, path: Path) -> ArtifactHandle:
        """Publish the file at *path* under slot *name*.

        Raises ``ArtifactPublishError`` if the slot already has a producer,
        or the file is missing or empty.
        """
        if name in self._handles:
            raise ArtifactPublishError(
                f"Artifact slot {name!r} already published in run {self.run_id}"
            )
        path = Path(path)
        if not path.is_file():
            raise ArtifactPublishError(f"Artifact payload {path} does not exist")
        data = path.read_bytes()
        if not data:
            raise ArtifactPublishError(f"Artifact payload {path} is empty")

        stored = self._store.store(data, name=path.name, metadata={"slot": name})
        handle = ArtifactHandle(
            name=name,
            file_name=path.name,
            content_address=stored.content_address,
            size_bytes=stored.size_bytes,
        )
        self._handles[name] = handle
        logger.info(
            "published %s (%s, %d bytes) as %s",
            path.name,
            stored.content_address[:19],
            stored.size_bytes,
            name,
        )
        return handle

    def consume(self, handle: ArtifactHandle) -> bytes:
        """Return the payload for *handle*; a second call raises."""
        published = self._handles.get(handle.name)
        if published is None or published.content_address != handle.content_address:
            raise HandoffError(
                f"Artifact {handle.name!r} was not published in run {self.run_id}"
            )
        if handle.name in self._consumed:
            raise ArtifactConsumedError(
                f"Artifact {handle.name!r} was already consumed in run {self.run_id}"
            )
        if not self._store.verify(handle.content_address):
            raise ArtifactIntegrityError(
                f"Artifact {handle.name!r} failed integrity check at consume time"
            )
        data = self._store.retrieve(handle.content_address)
        self._consumed.add(handle.name)
        return data

    def get(self, name: str) -> ArtifactHandle | None:
        return self._handles.get(name)

    def is_consumed(self, name: str) -> bool:
        return name in self._consumed

    def published_names(self) -> list[str]:
        return sorted(self._handles)
