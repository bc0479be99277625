"""Delivery marketplace FastAPI application.

Processes commands synchronously via HTTP. Every request runs inside the
delivery domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (projectors fire in UoW)
#   - "production" → event_processing = "async" (projectors fire via Engine)
from delivery.domain import delivery  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

delivery.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Delivery Marketplace API",
    description="Orders, courier bids, dual escrow and wallet settlement",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_PUBLIC_PATHS = ("/health", "/docs", "/openapi.json", "/redoc")


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the delivery domain context for each API request."""
    if request.url.path.startswith(_PUBLIC_PATHS):
        return await call_next(request)
    with delivery.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from delivery.api import maintenance_router, order_router, user_router, wallet_router  # noqa: E402
from delivery.api.errors import register_delivery_exception_handlers  # noqa: E402

app.include_router(order_router)
app.include_router(wallet_router)
app.include_router(user_router)
app.include_router(maintenance_router)
register_delivery_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": delivery.name}})
