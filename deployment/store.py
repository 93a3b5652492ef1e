"""File-based storage for the deployment record.

The record lives in a single JSON document (deployment.json at the project
root). It is always rewritten as a whole with an atomic write, so a crash in
the middle of a stage leaves the previous, still-consistent record on disk.
"""

import json
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from .exceptions import (
    CorruptRecordError,
    RecordLockedError,
    RecordNotFoundError,
    RecordWriteError,
)
from .record import DeploymentRecord
from .stages import STAGE_TABLE, StageTable


def atomic_write(filepath: Path, content: str, encoding: str = "utf-8") -> None:
    """Atomically write content to a file.

    Uses the write-then-rename pattern for atomicity:
    1. Write content to a temporary file in the same directory
    2. Sync the temporary file to disk
    3. Rename the temporary file to the target path (atomic on POSIX)

    Either the old content or the new content exists, never partial data.

    Args:
        filepath: Target file path to write to.
        content: Content to write.
        encoding: File encoding (default: utf-8).

    Raises:
        OSError: If write or rename operation fails.
    """
    filepath.parent.mkdir(parents=True, exist_ok=True)

    # Same directory as the target so the rename stays on one filesystem
    with tempfile.NamedTemporaryFile(
        mode="w",
        dir=filepath.parent,
        prefix=f".{filepath.name}.",
        suffix=".tmp",
        encoding=encoding,
        delete=False,
    ) as tmp_file:
        tmp_path = Path(tmp_file.name)
        try:
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        except OSError:
            tmp_file.close()
            tmp_path.unlink(missing_ok=True)
            raise

    try:
        tmp_path.replace(filepath)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def validate_record(record: DeploymentRecord, table: StageTable = STAGE_TABLE) -> str | None:
    """Check the record's structural invariants.

    Args:
        record: Record to validate.
        table: Stage table the record was produced with.

    Returns:
        Description of the first violation, or None if the record is valid.
    """
    if not record.name:
        return "missing 'name'"
    if not record.owner_address:
        return "missing 'ownerAddress'"

    for stage_id in sorted(record.completed_stages):
        stage = table.find(stage_id)
        if stage is None:
            return f"unknown completed stage '{stage_id}'"

        missing = stage.missing_predecessor(record.completed_stages)
        if missing is not None:
            return f"stage '{stage_id}' is completed but its predecessor '{missing}' is not"

        for produced in stage.produced_fields:
            if not record.has_field(produced):
                return f"stage '{stage_id}' is completed but '{produced}' is missing"

    return None


class RecordStore:
    """Loads, saves and locks the deployment record at one locator.

    Attributes:
        path: Path to the record file (the storage locator).
        lock_path: Path to the advisory lock file.
        lock_timeout: Seconds to wait for the lock (0 fails immediately).
    """

    def __init__(self, path: Path, table: StageTable = STAGE_TABLE, lock_timeout: float = 0.0):
        """Initialize record store.

        Args:
            path: Path to the record file.
            table: Stage table used to validate loaded records.
            lock_timeout: Seconds to wait for the lock before failing.
        """
        self.path = Path(path)
        self.table = table
        self.lock_timeout = lock_timeout
        self.lock_path = self.path.with_name(f".{self.path.name}.lock")

    def exists(self) -> bool:
        """Check whether a record file exists."""
        return self.path.exists()

    def load(self) -> DeploymentRecord:
        """Load and validate the record.

        Returns:
            The deployment record.

        Raises:
            RecordNotFoundError: If the record file does not exist.
            CorruptRecordError: If the record fails structural validation.
        """
        if not self.path.exists():
            raise RecordNotFoundError(str(self.path))

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise CorruptRecordError(str(self.path), f"invalid JSON: {e}") from e
        except OSError as e:
            raise CorruptRecordError(str(self.path), f"unreadable: {e}") from e

        if not isinstance(data, dict):
            raise CorruptRecordError(str(self.path), "top level is not an object")

        try:
            record = DeploymentRecord.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            raise CorruptRecordError(str(self.path), str(e)) from e

        problem = validate_record(record, self.table)
        if problem:
            raise CorruptRecordError(str(self.path), problem)

        return record

    def save(self, record: DeploymentRecord) -> None:
        """Write the whole record atomically.

        Args:
            record: Record to persist.

        Raises:
            RecordWriteError: If the record could not be written. The prior
                on-disk content is left untouched.
        """
        content = json.dumps(record.to_dict(self.table.stage_ids()), indent=2) + "\n"
        try:
            atomic_write(self.path, content)
        except OSError as e:
            raise RecordWriteError(str(self.path), str(e)) from e

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Hold an exclusive advisory lock on the record.

        Raises:
            RecordLockedError: If another process holds the lock.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        file_lock = FileLock(str(self.lock_path), timeout=self.lock_timeout)
        try:
            file_lock.acquire()
        except Timeout as e:
            raise RecordLockedError(str(self.path)) from e

        try:
            yield
        finally:
            file_lock.release()
