import logging
import secrets
import string
from datetime import datetime
from typing import Callable, Dict, List, Optional

from coworking.schemas.booking import utcnow
from coworking.schemas.waiting_list import (
    WaitingListEntry,
    WaitingListEntryCreate,
    WaitingListEntryUpdate,
)
from coworking.storage import DocumentStorage

logger = logging.getLogger(__name__)

WAITING_LIST_KEY = "coworking-waiting-list"
ID_ALPHABET = string.digits + string.ascii_lowercase


def new_entry_id(now: datetime) -> str:
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(9))
    return f"waiting-{int(now.timestamp() * 1000)}-{suffix}"


class WaitingListStore:
    """
    People waiting for a desk, kept in a single document.
    Every change rewrites the whole document: concurrent writers can
    overwrite each other.
    """

    def __init__(self, storage: DocumentStorage, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self._clock = clock

    def _read(self) -> Dict[str, WaitingListEntry]:
        document = self.storage.get_document(WAITING_LIST_KEY)
        return {entry_id: WaitingListEntry.model_validate(entry) for entry_id, entry in document.items()}

    def _write(self, entries: Dict[str, WaitingListEntry]):
        self.storage.set_document(
            WAITING_LIST_KEY,
            {entry_id: entry.model_dump(mode="json") for entry_id, entry in entries.items()},
        )

    def get_all_entries(self) -> List[WaitingListEntry]:
        return sorted(self._read().values(), key=lambda e: e.created_at, reverse=True)

    def add_entry(self, data: WaitingListEntryCreate) -> WaitingListEntry:
        entries = self._read()
        now = self._clock()
        entry = WaitingListEntry(id=new_entry_id(now), created_at=now, **data.model_dump())
        entries[entry.id] = entry
        self._write(entries)
        logger.debug(f"Added waiting list entry {entry.id}")
        return entry

    def remove_entry(self, entry_id: str) -> bool:
        entries = self._read()
        if entries.pop(entry_id, None) is None:
            return False
        self._write(entries)
        logger.debug(f"Removed waiting list entry {entry_id}")
        return True

    def update_entry(self, entry_id: str, changes: WaitingListEntryUpdate) -> Optional[WaitingListEntry]:
        entries = self._read()
        entry = entries.get(entry_id)
        if entry is None:
            return None
        updated = entry.model_copy(update=changes.model_dump(exclude_unset=True))
        entries[entry_id] = updated
        self._write(entries)
        return updated

    def clear_all(self):
        self.storage.remove_document(WAITING_LIST_KEY)
        logger.info("Cleared waiting list")
