"""
First-run data for an empty inventory: the admin account, one depot, one
office and two common server models. Each group is only created when its
table is empty, so calling this on every startup is harmless.
"""

import logging

from core.base import LocationType, UserRole
from core.interfaces.storage import InventoryStorage

log = logging.getLogger("inventory.seed")

DEFAULT_LOCATIONS = [
    {
        "name": "Ankara Data Center",
        "type": LocationType.DEPOT,
        "address": "Ankara, Yenimahalle",
        "capacity": 50,
    },
    {
        "name": "Istanbul Head Office",
        "type": LocationType.OFFICE,
        "address": "Istanbul, Maslak",
        "capacity": 15,
    },
]

DEFAULT_SERVER_MODELS = [
    {
        "brand": "Dell",
        "name": "PowerEdge R740",
        "specs": "2x Intel Xeon Gold 6230, 128GB RAM, 4x 1.8TB SSD",
    },
    {
        "brand": "HPE",
        "name": "ProLiant DL380 Gen10",
        "specs": "2x Intel Xeon Silver 4210, 64GB RAM, 2x 960GB SSD",
    },
]


def seed_defaults(storage: InventoryStorage, admin_password: str = "admin123") -> dict:
    """Populate empty tables. Returns how many rows of each kind were created."""
    created = {"users": 0, "locations": 0, "server_models": 0}

    if not storage.get_all_users():
        storage.create_user({
            "username": "admin",
            "password": admin_password,
            "full_name": "Administrator",
            "role": UserRole.ADMIN,
        })
        created["users"] = 1

    if not storage.get_all_locations():
        for location in DEFAULT_LOCATIONS:
            storage.create_location(location)
        created["locations"] = len(DEFAULT_LOCATIONS)

    if not storage.get_all_server_models():
        for model in DEFAULT_SERVER_MODELS:
            storage.create_server_model(model)
        created["server_models"] = len(DEFAULT_SERVER_MODELS)

    if any(created.values()):
        log.info(f"Seeded defaults: {created}")
    return created
