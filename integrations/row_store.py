import threading
from typing import List, Optional, Sequence


class RowStoreUnavailable(Exception):
    """The booking sheet could not be reached or answered with an error."""


class RowStore:
    """Append-only table of booking rows (the spreadsheet)."""

    def append(self, row: Sequence) -> None:
        raise NotImplementedError

    def read_all(self, range_hint: Optional[str] = None) -> List[list]:
        raise NotImplementedError


class InMemoryRowStore(RowStore):
    def __init__(self, rows=None):
        self._rows: List[list] = [list(r) for r in (rows or [])]
        self._lock = threading.Lock()
        self.unavailable = False

    def append(self, row):
        if self.unavailable:
            raise RowStoreUnavailable("row store offline")
        with self._lock:
            self._rows.append(list(row))

    def read_all(self, range_hint=None):
        if self.unavailable:
            raise RowStoreUnavailable("row store offline")
        with self._lock:
            return [list(r) for r in self._rows]
