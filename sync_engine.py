"""Reconciliation between the images table and the storage root.

The storage root and the table are both authoritative: files are never
modified or removed, and rows are never deleted. A run

1. snapshots every row and every image file in the root,
2. adopts files no row points at (orphans) as new rows,
3. flags rows whose file is gone and heals flagged rows whose file is back.

Both passes work from the snapshots taken in step 1, so a file adopted in
step 2 is not looked at again in step 3 of the same run.
"""
import logging
import threading
from typing import Callable, List

from errors import DuplicateStoragePathError, SyncInProgressError
from inspector import ImageAnalysis, analyze
from models import ImageRecord, SyncFileError, SyncSummary
from scanner import ContentDirectory, DirectoryEntry
from store import RecordStore

logger = logging.getLogger(__name__)


class SyncEngine:
    def __init__(
        self,
        store: RecordStore,
        directory: ContentDirectory,
        inspector: Callable[[str], ImageAnalysis] = analyze,
    ):
        self.store = store
        self.directory = directory
        self.inspector = inspector
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run(self) -> SyncSummary:
        """Run one reconciliation pass.

        Raises SyncInProgressError if another run holds the engine. Any store
        or root-listing failure propagates; rows already written stay written.
        """
        if not self._lock.acquire(blocking=False):
            raise SyncInProgressError()
        try:
            return self._run()
        finally:
            self._lock.release()

    def _run(self) -> SyncSummary:
        records = self.store.list_all()
        scan = self.directory.scan()

        summary = SyncSummary(total_db_before=len(records), total_disk=len(scan.entries))
        summary.errors.extend(scan.errors)

        known_paths = {r.storage_path for r in records}
        orphans = [e for e in scan.entries if e.full_path not in known_paths]
        for entry in orphans:
            if self._adopt(entry, summary.errors):
                summary.added_from_disk += 1

        for record in records:
            try:
                present = self.directory.exists(record.storage_path)
            except OSError as exc:
                logger.warning("Cannot stat %s: %s", record.storage_path, exc)
                summary.errors.append(SyncFileError(path=record.storage_path, error=str(exc)))
                continue
            if not present and not record.is_corrupted:
                if self.store.set_corrupted(record.id, True):
                    logger.debug("Flagged missing file %s", record.storage_path)
                    summary.marked_missing += 1
            elif present and record.is_corrupted and not record.decode_failed:
                # width/height are left as recorded; the file is not re-inspected
                if self.store.set_corrupted(record.id, False):
                    logger.debug("Healed %s", record.storage_path)
                    summary.healed += 1

        logger.info(
            "Sync done: db_before=%d disk=%d added=%d missing=%d healed=%d errors=%d",
            summary.total_db_before,
            summary.total_disk,
            summary.added_from_disk,
            summary.marked_missing,
            summary.healed,
            len(summary.errors),
        )
        return summary

    def _adopt(self, entry: DirectoryEntry, errors: List[SyncFileError]) -> bool:
        """Insert a row for an orphan file. Per-file failures go to ``errors``."""
        try:
            size = self.directory.size_of(entry.full_path)
        except OSError as exc:
            logger.warning("Cannot stat %s: %s", entry.full_path, exc)
            errors.append(SyncFileError(path=entry.full_path, error=str(exc)))
            return False

        analysis = self.inspector(entry.full_path)
        record = ImageRecord(
            filename=entry.name,
            mime_type=entry.mime_type,
            size_bytes=size,
            width=analysis.width,
            height=analysis.height,
            storage_path=entry.full_path,
            is_corrupted=analysis.is_corrupted,
            decode_failed=analysis.is_corrupted,
        )
        try:
            self.store.insert(record)
        except DuplicateStoragePathError as exc:
            # only reachable if a writer inserted this path after the snapshot
            logger.warning("Not adopting %s: %s", entry.full_path, exc.message)
            errors.append(SyncFileError(path=entry.full_path, error=exc.message))
            return False
        logger.debug("Adopted orphan %s (corrupted=%s)", entry.full_path, analysis.is_corrupted)
        return True
