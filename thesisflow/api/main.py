from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from thesisflow import __version__
from thesisflow.api.middleware import SecurityHeadersMiddleware
from thesisflow.api.routers import files, health, theses, users
from thesisflow.common.logger import configure_logging
from thesisflow.core.config import get_settings

settings = get_settings()

logger = configure_logging(settings)

app = FastAPI(
    title=settings.app_name,
    description="Thesis submission and multi-stage approval workflow",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Include routers
app.include_router(theses.router, prefix="/api")
app.include_router(files.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
