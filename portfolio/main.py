"""
Main FastAPI application for the portfolio backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from portfolio.config import settings
from portfolio.database import close_db, init_db
from portfolio.dependencies.auth import require_admin
from portfolio.routers import (
    about,
    admin,
    blog,
    carousel,
    chatbot,
    chatbot_admin,
    contact,
    evaluations,
    health,
    learning,
    lists,
    polisher,
    projects,
    resume,
    system_prompts,
    uploads,
)
from portfolio.services.llm_client import LLMClient
from portfolio.utils.helpers import utcnow
from portfolio.utils.uploads import PUBLIC_MEDIA_SUBDIRS

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


def _build_llm_client() -> LLMClient:
    return LLMClient(
        base_url=settings.LLM_BASE_URL,
        api_key=settings.LLM_API_KEY,
        chat_model=settings.LLM_CHAT_MODEL,
        embed_model=settings.LLM_EMBED_MODEL,
        timeout=settings.LLM_TIMEOUT,
        max_retries=settings.LLM_MAX_RETRIES,
    )


async def _check_llm(llm: LLMClient) -> bool:
    """Check the LLM provider. Never raises; chat and polish degrade gracefully without it."""
    if not settings.LLM_API_KEY:
        logger.warning("⚠ LLM_API_KEY is not set - chatbot and polisher will use fallbacks")
        return False
    try:
        reachable = await llm.check_health()
    except Exception as exc:
        logger.error("✗ LLM provider unreachable (%s)", exc)
        return False
    if reachable:
        logger.info("✓ LLM provider reachable at %s (chat=%s, embed=%s)",
                    settings.LLM_BASE_URL, settings.LLM_CHAT_MODEL, settings.LLM_EMBED_MODEL)
    else:
        logger.warning("⚠ LLM provider at %s did not answer the health check", settings.LLM_BASE_URL)
    return reachable


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting portfolio backend …")
    logger.info("=" * 60)

    # 1 - Database (required; raises on failure)
    await _check_database()

    # 2 - LLM client (optional; logs warnings but continues)
    app.state.llm_client = _build_llm_client()
    await _check_llm(app.state.llm_client)

    # 3 - Upload directories
    for subdir in PUBLIC_MEDIA_SUBDIRS:
        os.makedirs(os.path.join(settings.UPLOAD_DIR, subdir), exist_ok=True)
    logger.info("✓ Upload directory: %s", os.path.abspath(settings.UPLOAD_DIR))

    logger.info("=" * 60)
    logger.info("  Portfolio backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health/", settings.HOST, settings.PORT)
    logger.info("  Auto-evaluate conversations: %s", settings.AUTO_EVALUATE_CONVERSATIONS)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down portfolio backend …")
    await app.state.llm_client.aclose()
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Portfolio API",
    description=(
        "Backend for a personal portfolio site.\n\n"
        "Serves projects, blog posts and series, top-5 lists, carousel images "
        "and the resume, and runs the visitor chatbot with its evaluation and "
        "learning loop.\n\n"
        "Key endpoints:\n"
        "- `GET  /api/portfolio` - published projects\n"
        "- `GET  /api/blog/series/{identifier}` - a series with its posts\n"
        "- `POST /api/chatbot/chat` - ask the chatbot\n"
        "- `POST /api/admin/chatbot/evaluations/batch` - score stored answers\n"
        "- `POST /api/admin/polish-content` - writing review for drafts\n"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": utcnow().isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

admin_only = [Depends(require_admin)]

# Public
app.include_router(health.router,     prefix="/api/health",          tags=["Health"])
app.include_router(projects.router,   prefix="/api/portfolio",       tags=["Portfolio"])
app.include_router(blog.router,       prefix="/api/blog",            tags=["Blog"])
app.include_router(lists.router,      prefix="/api/lists",           tags=["Lists"])
app.include_router(carousel.router,   prefix="/api/carousel-images", tags=["Carousel"])
app.include_router(about.router,      prefix="/api/about-me",        tags=["About"])
app.include_router(contact.router,    prefix="/api/contact",         tags=["Contact"])
app.include_router(resume.router,     prefix="/api/resume",          tags=["Resume"])
app.include_router(chatbot.router,    prefix="/api/chatbot",         tags=["Chatbot"])

# Admin
app.include_router(admin.router,                prefix="/api/admin",                tags=["Admin"], dependencies=admin_only)
app.include_router(uploads.router,              prefix="/api/admin",                tags=["Admin"], dependencies=admin_only)
app.include_router(polisher.router,             prefix="/api/admin",                tags=["Polisher"], dependencies=admin_only)
app.include_router(projects.admin_router,       prefix="/api/admin/projects",       tags=["Admin"], dependencies=admin_only)
app.include_router(blog.admin_router,           prefix="/api/admin/blog",           tags=["Admin"], dependencies=admin_only)
app.include_router(blog.series_admin_router,    prefix="/api/admin/blog-series",    tags=["Admin"], dependencies=admin_only)
app.include_router(lists.admin_router,          prefix="/api/admin/lists",          tags=["Admin"], dependencies=admin_only)
app.include_router(carousel.admin_router,       prefix="/api/admin/carousel-images", tags=["Admin"], dependencies=admin_only)
app.include_router(contact.admin_router,        prefix="/api/admin/contacts",       tags=["Admin"], dependencies=admin_only)
app.include_router(resume.admin_router,         prefix="/api/admin/resume",         tags=["Admin"], dependencies=admin_only)
app.include_router(about.admin_router,          prefix="/api/admin/about-me",       tags=["Admin"], dependencies=admin_only)
app.include_router(evaluations.router,          prefix="/api/admin/chatbot/evaluations",    tags=["Evaluations"], dependencies=admin_only)
app.include_router(learning.router,             prefix="/api/admin/chatbot/learning",       tags=["Learning"], dependencies=admin_only)
app.include_router(system_prompts.router,       prefix="/api/admin/chatbot/system-prompts", tags=["System prompts"], dependencies=admin_only)
app.include_router(chatbot_admin.router,        prefix="/api/admin/chatbot",        tags=["Chatbot admin"], dependencies=admin_only)

# Public media only; resume and chatbot documents are reachable through their routes
for subdir in PUBLIC_MEDIA_SUBDIRS:
    app.mount(
        f"/uploads/{subdir}",
        StaticFiles(directory=os.path.join(settings.UPLOAD_DIR, subdir), check_dir=False),
        name=f"uploads-{subdir}",
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root - returns basic service info."""
    return {
        "name": "Portfolio API",
        "version": "1.0.0",
        "description": "Portfolio site backend with chatbot",
        "docs": "/docs",
        "health": "/api/health/",
        "endpoints": {
            "portfolio": "/api/portfolio",
            "blog": "/api/blog",
            "lists": "/api/lists",
            "about": "/api/about-me",
            "carousel": "/api/carousel-images",
            "contact": "/api/contact",
            "resume": "/api/resume",
            "chatbot": "/api/chatbot",
            "admin": "/api/admin",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portfolio.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
