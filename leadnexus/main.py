"""
Lead Nexus - FastAPI Application

Headless API for discovering, storing and searching media leads
(influencers, journalists, publishers).
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .dependencies import Container, get_container
from .errors import ConfigurationMissingError, LeadNexusError
from .routers import leads, records

SERVICE_NAME = "Lead Nexus API"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_container.cache_info().currsize:
        await get_container().aclose()


app = FastAPI(
    title=SERVICE_NAME,
    description="Scrape, extract and semantically search media leads",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_container().settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LeadNexusError)
async def lead_nexus_error_handler(request: Request, exc: LeadNexusError):
    print(f"[API] {request.method} {request.url.path} -> {exc.code}: {exc.message}", flush=True)
    if exc.details is not None:
        print(f"[API] Details: {exc.details}", flush=True)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": VERSION
    }


@app.get("/health")
async def health_check(container: Container = Depends(get_container)):
    """Health check with lead store connection test."""
    try:
        db_ok = await container.lead_store.ping()
    except ConfigurationMissingError as e:
        print(f"[API] Health check: {e.message}", flush=True)
        db_ok = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "disconnected"
    }


# Include routers
app.include_router(leads.router, prefix="/leads", tags=["Leads"])
app.include_router(records.router, tags=["Records"])
