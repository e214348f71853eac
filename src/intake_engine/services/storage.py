"""Local filesystem backends for uploaded files and packet exports."""

from __future__ import annotations

from pathlib import Path
from uuid import UUID, uuid4

from intake_engine.domain.files import FileCategory
from intake_engine.exceptions import StorageError
from intake_engine.logging_config import get_logger
from intake_engine.services.interfaces import ExportStore, FileStorage

logger = get_logger(__name__)


def _safe_name(name: str) -> str:
    return "".join(c if c.isalnum() or c in "._-" else "_" for c in name) or "file"


class LocalFileStorage(FileStorage):
    """Stores each upload as ``<category>/<uuid>_<name>`` under a root directory."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise StorageError("Storage key escapes the storage root", key=key)
        return path

    def store(self, data: bytes, name: str, category: FileCategory) -> str:
        key = f"{category.value}/{uuid4().hex}_{_safe_name(name)}"
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to store file: {exc}", key=key) from exc
        logger.debug("file_stored", key=key, size_bytes=len(data))
        return key

    def fetch(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read file: {exc}", key=key) from exc

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete file: {exc}", key=key) from exc


class LocalExportStore(ExportStore):
    """Writes packet artifacts to ``<root>/<intake_id>/<request_id>/<name>``."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    def write(self, intake_id: UUID, request_id: UUID, name: str, data: bytes) -> str:
        location = f"{intake_id}/{request_id}"
        directory = self._root / str(intake_id) / str(request_id)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            (directory / name).write_bytes(data)
        except OSError as exc:
            raise StorageError(
                f"Failed to write export {name}: {exc}", key=location
            ) from exc
        return location

    def read(self, location: str, name: str) -> bytes:
        try:
            return (self._root / location / name).read_bytes()
        except OSError as exc:
            raise StorageError(
                f"Failed to read export {name}: {exc}", key=location
            ) from exc
