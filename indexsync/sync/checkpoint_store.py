"""Checkpoint persistence for the continuation token."""

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from indexsync.errors import PersistenceError

log = structlog.stdlib.get_logger()


class CheckpointStore(ABC):
    """Persists the single continuation token marking synchronized progress.

    An absent token is the signal for an initial sync, not an error.
    """

    @abstractmethod
    def load(self) -> str | None:
        """Load the last saved token.

        Returns:
            The token, or None if no checkpoint exists

        Raises:
            PersistenceError: If the checkpoint exists but cannot be read
        """

    @abstractmethod
    def save(self, token: str) -> None:
        """Atomically replace the saved token.

        Raises:
            PersistenceError: If the token cannot be written
        """

    @abstractmethod
    def clear(self) -> None:
        """Remove the saved token so the next run is an initial sync."""


class FileCheckpointStore(CheckpointStore):
    """Stores the token in a local file, replaced atomically on every save."""

    def __init__(self, path: str | Path):
        """
        Initialize file checkpoint store.

        Args:
            path: File that holds the token. Parent directories are created on save.
        """
        self._path = Path(path)
        log.info("checkpoint_store_initialized", path=str(self._path))

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> str | None:
        log.info("loading_checkpoint", path=str(self._path))

        try:
            token = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            log.info("no_checkpoint_found", path=str(self._path))
            return None
        except OSError as e:
            log.error("failed_to_load_checkpoint", path=str(self._path), error=str(e))
            raise PersistenceError(f"Failed to load checkpoint: {e}") from e

        if not token:
            log.warning("empty_checkpoint_file", path=str(self._path))
            return None

        log.info("checkpoint_loaded", path=str(self._path))
        return token

    def save(self, token: str) -> None:
        if not token or not token.strip():
            raise PersistenceError("Refusing to save an empty checkpoint token")

        log.info("saving_checkpoint", path=str(self._path))

        tmp_path: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)

            # Temp file lives in the target directory so os.replace stays atomic
            fd, tmp_path = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(token)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
            tmp_path = None

            log.info("checkpoint_saved", path=str(self._path))

        except OSError as e:
            log.error("failed_to_save_checkpoint", path=str(self._path), error=str(e))
            raise PersistenceError(f"Failed to save checkpoint: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def clear(self) -> None:
        log.info("clearing_checkpoint", path=str(self._path))
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            log.error("failed_to_clear_checkpoint", path=str(self._path), error=str(e))
            raise PersistenceError(f"Failed to clear checkpoint: {e}") from e
