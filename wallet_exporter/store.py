import threading

from wallet_exporter.entities import SnapshotEntity


class SnapshotStore:
    """
    Holds the last fully assembled snapshot.

    Snapshots are frozen and only the reference swap happens under the lock,
    so a plain ``threading.Lock`` stands in for a reader/writer lock: readers
    hold it for one attribute load and keep a consistent generation even
    while the next one is being swapped in.
    """

    def __init__(self, initial: SnapshotEntity | None = None):
        self._lock = threading.Lock()
        self._snapshot = initial or SnapshotEntity()

    def read(self) -> SnapshotEntity:
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: SnapshotEntity) -> SnapshotEntity:
        """
        Swap in a new snapshot.

        Parameters
        ----------
        snapshot : SnapshotEntity
            Fully assembled snapshot

        Returns
        -------
        SnapshotEntity
            The snapshot that was replaced
        """
        with self._lock:
            previous, self._snapshot = self._snapshot, snapshot
        return previous
