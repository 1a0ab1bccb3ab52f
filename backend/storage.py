"""Local artifact storage: compressed, all-or-nothing writes and validated JSON reads."""

from __future__ import annotations

import bz2
import gzip
import logging
import os
import tempfile
from pathlib import Path
from typing import IO, TypeVar

from pydantic import BaseModel, ValidationError

from targets import is_remote

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class StorageError(Exception):
    def __init__(self, target: str, message: str):
        super().__init__(f"{target}: {message}")
        self.target = target
        self.message = message

    # keeps the error intact across process pool boundaries
    def __reduce__(self):
        return type(self), (self.target, self.message)


class ArtifactNotFoundError(StorageError):
    pass


class ArtifactParseError(StorageError):
    pass


class UnsupportedTargetError(StorageError):
    pass


def _open(path: str | Path, mode: str, name: str = "") -> IO[bytes]:
    """Open `path`, compressed according to the suffix of `name` (default: the path itself)."""
    name = name or str(path)
    if name.endswith(".bz2"):
        return bz2.open(path, mode)
    if name.endswith(".gz"):
        return gzip.open(path, mode)
    return open(path, mode)


class LocalStorage:
    """
    Reader/writer for local filesystem targets.

    Compression follows the target suffix (.bz2, .gz, else plain). Writes
    go to a temp file next to the target and are renamed into place, so
    readers never see a partial artifact.
    """

    def _local_path(self, target: str) -> Path:
        if is_remote(target):
            raise UnsupportedTargetError(target, "remote targets need a remote storage backend")
        return Path(target)

    def exists(self, target: str) -> bool:
        return self._local_path(target).exists()

    def write(self, target: str, payload: str | bytes) -> None:
        path = self._local_path(target)
        data = payload.encode("utf-8") if isinstance(payload, str) else payload
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        os.close(fd)
        try:
            with _open(tmp_name, "wb", name=path.name) as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.debug("wrote %d bytes to %s", len(data), target)

    def read_bytes(self, target: str) -> bytes:
        path = self._local_path(target)
        if not path.exists():
            raise ArtifactNotFoundError(target, "no such artifact")
        try:
            with _open(path, "rb") as f:
                return f.read()
        except (OSError, EOFError) as exc:
            raise ArtifactParseError(target, f"failed to decompress: {exc}") from exc

    def read_json(self, target: str, model: type[ModelT]) -> ModelT:
        """Read an artifact and validate it against `model`."""
        raw = self.read_bytes(target)
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            raise ArtifactParseError(target, f"invalid artifact: {exc.error_count()} errors") from exc
