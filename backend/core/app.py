# core/app.py: App factory with module discovery
#
# Builds the FastAPI application: discovers the modules under backend/modules/,
# orders them by their REQUIRES/IMPLEMENTS declarations, lets each one register
# its routes, and wires the storage backend into app.state at startup.
#
# main.py becomes: from core.app import create_app; app = create_app()

import importlib
import logging
import pathlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.errors import ConnectionFailure, InventoryError
from core.interfaces.storage import InventoryStorage
from core.registry import ModuleRegistry

log = logging.getLogger("inventory.api")

__version__ = "1.0.0"

STORAGE_INTERFACE = "inventory_storage"


# ---------------------------------------------------------------------------
# Module discovery helpers
# ---------------------------------------------------------------------------

def _discover_modules() -> list[str]:
    """Package names under backend/modules/ whose __init__ declares MODULE_ID."""
    modules_dir = pathlib.Path(__file__).parent.parent / "modules"
    found = []
    for entry in sorted(modules_dir.iterdir()):
        if not (entry / "__init__.py").exists():
            continue
        pkg_name = f"modules.{entry.name}"
        mod = importlib.import_module(pkg_name)
        if hasattr(mod, "MODULE_ID"):
            found.append(pkg_name)
    return found


def _resolve_load_order(pkg_names: list[str]) -> list[str]:
    """Providers before consumers; unresolvable cycles keep discovery order."""
    manifests = {pkg: importlib.import_module(pkg) for pkg in pkg_names}
    provided_by = {
        iface: pkg
        for pkg, mod in manifests.items()
        for iface in getattr(mod, "IMPLEMENTS", [])
    }
    depends_on = {
        pkg: {
            provided_by[iface]
            for iface in getattr(mod, "REQUIRES", [])
            if iface in provided_by and provided_by[iface] != pkg
        }
        for pkg, mod in manifests.items()
    }

    ordered: list[str] = []
    pending = list(pkg_names)
    while pending:
        ready = [pkg for pkg in pending if depends_on[pkg] <= set(ordered)]
        if not ready:
            log.warning(f"Module load order: circular dependencies among {pending}")
            ordered.extend(pending)
            break
        for pkg in ready:
            ordered.append(pkg)
            pending.remove(pkg)
    return ordered


# ---------------------------------------------------------------------------
# Middleware and error mapping
# ---------------------------------------------------------------------------

def _setup_middleware(app: FastAPI, cors_origins: str) -> None:
    origins = [o.strip() for o in (cors_origins or "").split(",") if o.strip()]
    if "*" in origins:
        log.warning(
            "CORS origin '*' is incompatible with allow_credentials=True; "
            "ignoring it. Set explicit origins in CORS_ORIGINS."
        )
        origins = [o for o in origins if o != "*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-User-Id"],
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError):
        if exc.status_code >= 500:
            log.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            log.info(f"{request.method} {request.url.path} rejected ({type(exc).__name__}): {exc.message}")
        body = {"detail": exc.message, "error": type(exc).__name__}
        for extra in ("capacity", "requested", "existing"):
            if getattr(exc, extra, None) is not None:
                body[extra] = getattr(exc, extra)
        return JSONResponse(status_code=exc.status_code, content=body)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(settings=None, storage: Optional[InventoryStorage] = None) -> FastAPI:
    """Create and configure the inventory API.

    settings defaults to core.config.settings. Passing a ready storage object
    skips backend construction (and seeding), which is how the tests build
    apps around a fresh backend.
    """
    if settings is None:
        from core.config import settings

    registry = ModuleRegistry()
    ordered_pkgs = _resolve_load_order(_discover_modules())
    log.info(f"Module load order: {[p.split('.')[-1] for p in ordered_pkgs]}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.storage is None
        if owned:
            from modules.inventory.storage import create_storage

            app.state.storage = create_storage(settings)
            if settings.seed_defaults:
                from modules.inventory.seed import seed_defaults

                seed_defaults(app.state.storage, settings.default_admin_password)
        registry.register_provider(STORAGE_INTERFACE, app.state.storage)
        registry.validate_dependencies()

        yield

        engine = getattr(app.state.storage, "engine", None)
        if owned and engine is not None:
            engine.dispose()
            log.info("Database engine disposed")

    app = FastAPI(
        title="Server Inventory",
        description="Track physical servers, their locations, transfers, notes and hosted VMs",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
    )
    app.state.storage = storage
    app.state.registry = registry
    app.state.settings = settings
    if storage is not None:
        registry.register_provider(STORAGE_INTERFACE, storage)

    _setup_middleware(app, settings.cors_origins)
    _register_error_handlers(app)

    @app.get("/health", tags=["System"])
    def health(request: Request):
        backend = request.app.state.storage
        if backend is None:
            return JSONResponse(status_code=503, content={"status": "starting", "version": __version__})
        try:
            backend.ping()
        except ConnectionFailure as exc:
            return JSONResponse(
                status_code=503,
                content={"status": "unavailable", "backend": backend.backend_name, "detail": exc.message},
            )
        return {"status": "ok", "backend": backend.backend_name, "version": __version__}

    for pkg in ordered_pkgs:
        mod = importlib.import_module(pkg)
        registry.register_module(getattr(mod, "MODULE_ID", pkg), getattr(mod, "REQUIRES", []))
        if hasattr(mod, "register"):
            mod.register(app, registry)
            log.debug(f"Registered module: {pkg}")

    return app
