MODULE_ID = "inventory"
MODULE_VERSION = "1.0.0"
MODULE_DESCRIPTION = "Physical server inventory: servers, locations, transfers, notes, VMs and the activity trail"

ROUTES = [
    "inventory.routes",
]

TABLES = [
    "users",
    "locations",
    "server_models",
    "servers",
    "server_notes",
    "server_transfers",
    "server_details",
    "activities",
    "id_sequences",
]

PUBLISHES = []

SUBSCRIBES = []

IMPLEMENTS = ["inventory_storage"]

REQUIRES = []

DAEMONS = []


def register(app, registry) -> None:
    """Register the inventory module routes."""
    from modules.inventory import routes

    app.include_router(routes.router, prefix="/api")
    app.include_router(routes.router, prefix="/api/v1")
