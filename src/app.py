"""Storefront FastAPI application.

Web server for the customer cart. Each request under ``/carts`` is wrapped
in the Storefront domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
import re
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.domain import storefront
from storefront.inventory.gateway import InMemoryInventory
from storefront.persistence import JsonFileSnapshotStore
from storefront.session import SessionRegistry
from storefront.settings import Config

storefront.init()

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/carts": storefront,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


def snapshot_store_for(session_key: str) -> JsonFileSnapshotStore:
    """One snapshot file per session, next to the configured snapshot path."""
    base = Path(Config.SNAPSHOT_PATH)
    safe_key = re.sub(r"[^A-Za-z0-9_-]", "_", session_key)
    return JsonFileSnapshotStore(base.with_name(f"{base.stem}-{safe_key}{base.suffix}"))


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
def create_app(inventory=None, store_factory=snapshot_store_for) -> FastAPI:
    app = FastAPI(
        title="Storefront API",
        description="Convenience-store cart with promotion pricing and reorder",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the Protean domain context for each cart request."""
        domain = _resolve_domain(request.url.path)
        if domain is not None:
            with domain.domain_context():
                response = await call_next(request)
            return response
        # No domain match, pass through
        return await call_next(request)

    app.state.inventory = inventory if inventory is not None else InMemoryInventory()
    app.state.cart_sessions = SessionRegistry(app.state.inventory, store_factory=store_factory)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    from storefront.api import cart_router  # noqa: E402

    app.include_router(cart_router)

    # -----------------------------------------------------------------------
    # Health / root
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "domains": {
                    "storefront": {"name": storefront.name},
                },
            }
        )

    return app


app = create_app()
