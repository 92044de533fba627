"""Storage backends for the inventory module and the factory that picks one."""

import logging

from core.errors import ValidationError
from core.interfaces.storage import InventoryStorage

log = logging.getLogger("inventory.storage")

BACKENDS = ("memory", "database")


def create_storage(settings) -> InventoryStorage:
    """Build the backend named by settings.storage_backend."""
    backend = (settings.storage_backend or "memory").strip().lower()

    if backend == "memory":
        from modules.inventory.storage.memory import InMemoryStorage

        storage = InMemoryStorage(
            server_id_prefix=settings.server_id_prefix,
            server_id_width=settings.server_id_width,
        )
    elif backend == "database":
        from core.db import create_db_engine
        from modules.inventory.storage.database import DatabaseStorage

        engine = create_db_engine(settings.database_url, echo=settings.debug)
        storage = DatabaseStorage(
            engine,
            encryption_key=settings.encryption_key,
            server_id_prefix=settings.server_id_prefix,
            server_id_width=settings.server_id_width,
        )
    else:
        raise ValidationError(f"Unknown storage backend {backend!r}; expected one of {BACKENDS}")

    log.info(f"Storage backend: {storage.backend_name}")
    return storage
