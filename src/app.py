"""Studio operations FastAPI application.

Web server for the admin dashboard: orders, customers, shipping labels
and the carrier tracking webhook. Every request runs inside the
operations domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay (memory adapters unless a
# domain.toml says otherwise).
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from operations.domain import operations  # noqa: E402
from operations.utils.logging import add_context, clear_context, configure_logging
from protean.integrations.fastapi import register_exception_handlers

configure_logging()
operations.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Studio Operations API",
    description="Order lifecycle and shipment fulfillment for the studio dashboard",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

_DOMAIN_PREFIXES = ("/orders", "/customers", "/shipping")


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the operations domain context for API requests."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        clear_context()
        add_context(method=request.method, path=request.url.path)
        with operations.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from operations.api import customer_router, order_router, shipping_router  # noqa: E402

app.include_router(order_router)
app.include_router(customer_router)
app.include_router(shipping_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"operations": {"name": operations.name}},
        }
    )
