import logging
from typing import Sequence

from coworking.config import Settings
from coworking.schemas.desk import DEFAULT_DESKS, Desk
from coworking.storage import DocumentStorage
from coworking.store.base import DataStore
from coworking.store.local import LocalDataStore
from coworking.store.relational import RelationalDataStore

logger = logging.getLogger(__name__)


def create_data_store(settings: Settings, desks: Sequence[Desk] = DEFAULT_DESKS) -> DataStore:
    """Pick the backend once at startup; it is never swapped while running."""
    settings.ensure_backend_configured()
    if settings.backend == "remote":
        logger.info("Using relational data store")
        return RelationalDataStore.from_url(
            settings.remote_url, settings.remote_key, desks=desks, currency=settings.currency
        )
    logger.info(f"Using local data store in {settings.data_dir}")
    storage = DocumentStorage(settings.data_dir, settings.storage_quota_bytes)
    return LocalDataStore(storage, desks=desks, currency=settings.currency)
