"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from luzzi.config import settings
from luzzi.exceptions import LuzziAPIError
from luzzi.handlers.exception_handler import (
    generic_exception_handler,
    luzzi_api_exception_handler,
    validation_exception_handler,
)
from luzzi.logging.config import configure_logging
from luzzi.middleware.logging import LoggingMiddleware
from luzzi.middleware.request_validation import RequestSizeValidationMiddleware
from luzzi.routes import events, status

# Configure logging before creating the app
configure_logging()

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="""
## Luzzi Ingestion API

Receives batches of analytics events from the Luzzi SDK and stores them per
project.

### Authentication

Send either of the project's keys in the `x-api-key` header:

```
x-api-key: pk_live_...
```

Live and test keys authenticate the same project.

### Quota

Each project accepts up to `events_limit` events per period.

- Quota already used up: `429`
- Quota runs out part-way through a batch: `200`, the earliest events are
  stored and the rest are reported in `dropped`. Do not resend dropped events.
""",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Starlette wraps middleware in reverse order: the last one added runs first
app.add_middleware(RequestSizeValidationMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["content-type", "x-api-key", "x-request-id"],
    expose_headers=["x-request-id"],
)

app.add_exception_handler(LuzziAPIError, luzzi_api_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(events.router)
app.include_router(status.router)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Service name, version and where to find docs and health."""
    return {
        "message": f"Welcome to {settings.api_title}",
        "version": settings.api_version,
        "docs": "/docs",
        "health": "/status",
    }
