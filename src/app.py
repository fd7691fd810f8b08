"""GymStore FastAPI application.

Serves the store domain (cart, checkout, stock ledger, catalog boundary,
orders and low-stock reporting) over HTTP. Commands are processed
synchronously inside the request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects the config overlay from store/domain.toml
#   - unset / "test" -> in-memory storage
#   - "production"   -> relational storage (DATABASE_URL)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from store.domain import store
from store.utils.logging import clear_context, configure_logging

configure_logging()
store.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="GymStore API",
    description="Gym store: stock ledger, carts and checkout",
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
    """Push the store domain context and start each request with clean log context."""
    clear_context()
    with store.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from store.api import routers  # noqa: E402
from store.api.errors import register_store_exception_handlers  # noqa: E402

for router in routers:
    app.include_router(router)

register_store_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": store.name})
