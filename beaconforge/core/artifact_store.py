"""Named, write-once artifact store over content-addressed blobs.

Blob layout: {base_path}/blobs/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat
Name layout: {base_path}/names/{namespace}/{name}.json

Each name has exactly one producer and is never rewritten once produced.
Identical file contents are stored once regardless of how many names
reference them.
"""

from __future__ import annotations

import io
import logging
import tarfile
from collections.abc import Mapping
from pathlib import Path, PurePosixPath

from beaconforge.core.hasher import (
    address_digest,
    blob_address,
    manifest_address,
    sha256_hex,
)
from beaconforge.models.artifacts import ArtifactSlot, StoredArtifact

logger = logging.getLogger(__name__)


class ArtifactExistsError(RuntimeError):
    """Raised when a name is reserved or produced a second time."""


class ArtifactNotFoundError(LookupError):
    """Raised when a name has not been produced."""


class ArtifactIntegrityError(RuntimeError):
    """Raised when a stored blob's hash does not match its address."""


class NamedArtifactStore:
    """Write-once-per-name store of file bundles.

    Parameters
    ----------
    base_path:
        Root directory for blobs and name manifests.
    namespace:
        Scope for names, typically the run id. Blobs are shared across
        namespaces.
    """

    def __init__(self, base_path: Path, namespace: str = "default") -> None:
        self._base = Path(base_path)
        self._names = self._base / "names" / namespace
        self._names.mkdir(parents=True, exist_ok=True)
        (self._base / "blobs").mkdir(parents=True, exist_ok=True)
        self.namespace = namespace
        self._slots: dict[str, ArtifactSlot] = {}

    def _blob_path(self, digest: str) -> Path:
        return self._base / "blobs" / digest[:2] / digest[2:4] / f"{digest}.dat"

    def _manifest_path(self, name: str) -> Path:
        if not name or "/" in name or name.startswith("."):
            raise ValueError(f"Invalid artifact name: {name!r}")
        return self._names / f"{name}.json"

    # ------------------------------------------------------------------
    # Reservation
    # ------------------------------------------------------------------

    def reserve(self, name: str, producer: str) -> ArtifactSlot:
        """Declare that *producer* will be the one step writing *name*."""
        if name in self._slots or self.exists(name):
            raise ArtifactExistsError(f"Artifact '{name}' is already declared")
        slot = ArtifactSlot(name=name, producer=producer)
        self._slots[name] = slot
        return slot

    def pending(self) -> list[str]:
        """Reserved names that have not been produced yet."""
        return [n for n in self._slots if not self.exists(n)]

    # ------------------------------------------------------------------
    # Produce
    # ------------------------------------------------------------------

    def put(
        self, name: str, files: Mapping[str, bytes], *, producer: str
    ) -> StoredArtifact:
        """Produce artifact *name* from relative path -> bytes."""
        manifest_path = self._manifest_path(name)
        if manifest_path.exists():
            raise ArtifactExistsError(f"Artifact '{name}' was already produced")
        slot = self._slots.get(name)
        if slot is not None and slot.producer != producer:
            raise ArtifactExistsError(
                f"Artifact '{name}' is reserved for '{slot.producer}', "
                f"not '{producer}'"
            )

        addresses: dict[str, str] = {}
        size = 0
        for rel_path, data in sorted(files.items()):
            rel = PurePosixPath(rel_path)
            if rel.is_absolute() or ".." in rel.parts:
                raise ValueError(f"Artifact paths must be relative: {rel_path!r}")
            address = blob_address(data)
            blob = self._blob_path(address_digest(address))
            if not blob.exists():
                blob.parent.mkdir(parents=True, exist_ok=True)
                blob.write_bytes(data)
            addresses[str(rel)] = address
            size += len(data)

        artifact = StoredArtifact(
            name=name,
            content_address=manifest_address(addresses),
            files=addresses,
            producer=producer,
            size_bytes=size,
        )
        manifest_path.write_text(artifact.model_dump_json(), encoding="utf-8")
        logger.debug(
            "Stored artifact %s (%d files, %d bytes) from %s",
            name, len(addresses), size, producer,
        )
        return artifact

    def upload_file(
        self, src: Path, name: str, *, filename: str | None = None
    ) -> StoredArtifact:
        """Produce *name* from a local file, stored as *filename* or its basename."""
        src = Path(src)
        return self.put(
            name, {filename or src.name: src.read_bytes()}, producer=f"upload:{src}"
        )

    def put_archive(self, name: str, data: bytes, *, producer: str) -> StoredArtifact:
        """Produce *name* from an uncompressed tar stream of regular files."""
        files: dict[str, bytes] = {}
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
            for member in tar.getmembers():
                if not member.isfile():
                    continue
                extracted = tar.extractfile(member)
                if extracted is None:
                    continue
                files[member.name.lstrip("/")] = extracted.read()
        return self.put(name, files, producer=producer)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def exists(self, name: str) -> bool:
        return self._manifest_path(name).exists()

    def get(self, name: str) -> StoredArtifact:
        path = self._manifest_path(name)
        if not path.exists():
            raise ArtifactNotFoundError(f"Artifact not found: {name}")
        return StoredArtifact.model_validate_json(path.read_text(encoding="utf-8"))

    def read(self, name: str) -> dict[str, bytes]:
        """Return every file of *name*, verifying each blob on the way out."""
        artifact = self.get(name)
        files: dict[str, bytes] = {}
        for rel_path, address in artifact.files.items():
            digest = address_digest(address)
            blob = self._blob_path(digest)
            if not blob.exists():
                raise ArtifactIntegrityError(f"Blob {address} of '{name}' is missing")
            data = blob.read_bytes()
            if sha256_hex(data) != digest:
                raise ArtifactIntegrityError(
                    f"Blob {address} of '{name}' failed integrity check"
                )
            files[rel_path] = data
        return files

    def verify(self, name: str) -> bool:
        """Re-hash every blob of *name*; False if missing or tampered."""
        try:
            self.read(name)
        except (ArtifactNotFoundError, ArtifactIntegrityError):
            return False
        return True

    def archive(self, name: str, prefix: str = "") -> bytes:
        """Return *name* as a tar stream with paths rooted at *prefix*."""
        buf = io.BytesIO()
        root = PurePosixPath(prefix.lstrip("/")) if prefix else PurePosixPath()
        with tarfile.open(fileobj=buf, mode="w") as tar:
            for rel_path, data in sorted(self.read(name).items()):
                info = tarfile.TarInfo(name=str(root / rel_path))
                info.size = len(data)
                info.mode = 0o755
                tar.addfile(info, io.BytesIO(data))
        return buf.getvalue()

    def materialize(self, name: str, dest: Path) -> list[Path]:
        """Write the files of *name* under *dest*; returns the written paths."""
        written = []
        for rel_path, data in self.read(name).items():
            target = Path(dest) / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            written.append(target)
        return written
