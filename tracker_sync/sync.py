"""Remote-or-local dataset access and full workspace sync."""

import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Dict, List

from .errors import DatasetNotFoundError
from .models import DatasetResult, Record, Snapshot, SyncedFile, SyncResult
from .storage import SnapshotStore
from .time_window import format_utc

MASTER_COLLECTIONS = ('teams', 'projects', 'issues', 'users', 'labels', 'cycles')


def _now_iso() -> str:
    return format_utc(datetime.now(timezone.utc))


class SyncOrchestrator:
    """Serves collections from the live API (writing through) or from disk."""

    def __init__(self, store: SnapshotStore, clock: Callable[[], str] = _now_iso):
        self.store = store
        self.clock = clock

    def get_dataset(self, name: str, remote: bool,
                    fetch_fn: Callable[[], List[Record]]) -> DatasetResult:
        """Return a collection, fetching it live when `remote` is set.

        Args:
            name: Snapshot name (e.g. 'issues')
            remote: Fetch from the API and overwrite the snapshot
            fetch_fn: Callable returning the collection's records

        Returns:
            DatasetResult tagged 'remote' or 'local'

        Raises:
            DatasetNotFoundError: If reading locally and no snapshot exists
        """
        if remote:
            items = fetch_fn()
            fetched_at = self.clock()
            self.store.write(name, Snapshot(fetched_at=fetched_at, items=items))
            return DatasetResult(fetched_at=fetched_at, items=items, source='remote')

        snapshot = self.store.load(name)
        if snapshot is None:
            raise DatasetNotFoundError(
                name,
                f'Local dataset "{name}" not found. Run "tracker-sync linear sync" '
                f'or re-run this command with --remote.',
            )
        return DatasetResult(fetched_at=snapshot.fetched_at, items=snapshot.items, source='local')

    def sync_all(self, fetchers: Dict[str, Callable[[], List[Record]]]) -> SyncResult:
        """Fetch every collection in parallel, then overwrite each snapshot.

        Nothing is written unless every fetch succeeds; the first failure
        propagates.

        Args:
            fetchers: Mapping of snapshot name to fetch callable

        Returns:
            SyncResult listing the written files
        """
        print(f"Fetching {len(fetchers)} collections...", file=sys.stderr)
        with ThreadPoolExecutor(max_workers=max(1, len(fetchers))) as executor:
            futures = {name: executor.submit(fetch) for name, fetch in fetchers.items()}
            datasets = {name: future.result() for name, future in futures.items()}

        fetched_at = self.clock()
        logging.info("Fetched datasets. Writing to storage...")

        files = []
        for name, items in datasets.items():
            path = self.store.write(name, Snapshot(fetched_at=fetched_at, items=items))
            files.append(SyncedFile(name=name, file_path=path, count=len(items)))
            print(f"  Stored {len(items)} {name} at {path}", file=sys.stderr)

        logging.info("Sync completed.")
        return SyncResult(fetched_at=fetched_at, files=files)
