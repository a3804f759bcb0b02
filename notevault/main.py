"""FastAPI application entry point."""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notevault import __version__
from notevault.config import get_settings
from notevault.dependencies import VaultConfigError, logger
from notevault.notes.router import router as notes_router
from notevault.search.router import router as search_router

settings = get_settings()

app = FastAPI(title="Notevault", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(search_router)
app.include_router(notes_router)


@app.exception_handler(VaultConfigError)
async def vault_config_error_handler(request: Request, exc: VaultConfigError) -> JSONResponse:
    """Report a missing or invalid vault root."""
    logger.error("vault_config_error", extra={"error": str(exc), "url": str(request.url)})
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    current = get_settings()
    return {
        "status": "healthy",
        "version": __version__,
        "vault_path": str(current.vault_path or ""),
    }


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {"name": "Notevault", "version": __version__, "docs": "/docs"}


logger.info("app_startup", extra={"host": settings.host, "port": settings.port})
