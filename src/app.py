"""Push relay FastAPI application.

Processes commands synchronously via HTTP. Every request runs inside the
pushrelay domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay:
#   - default      → event_processing = "sync"  (dispatch fires in the request UoW)
#   - "production" → event_processing = "async" (dispatch fires via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pushrelay.domain import pushrelay

pushrelay.init()

app = FastAPI(
    title="Push Relay API",
    description="Queued push notification dispatch with retry and retention",
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
    """Push the pushrelay domain context for each request."""
    with pushrelay.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from pushrelay.api.routes import router as notification_router  # noqa: E402

app.include_router(notification_router)


@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": pushrelay.name})
