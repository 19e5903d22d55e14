"""FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from studyguide.config import settings
from studyguide.database import init_db

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan."""
    logger.info("startup service=%s version=%s", settings.APP_NAME, settings.APP_VERSION)

    os.makedirs("data", exist_ok=True)
    await init_db()

    configured = [p for p in ("claude", "groq") if settings.provider_configured(p)]
    if not configured:
        logger.warning("startup no provider API key configured, generation relay will answer 401")
    logger.info("startup providers=%s relay=%s", ",".join(configured) or "-", settings.GENERATION_BASE_URL)

    yield

    logger.info("shutdown service=%s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Study guide generation API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION
    }


from studyguide.api.v1 import analyze, chat, progress, study
app.include_router(analyze.router, prefix="/api/v1", tags=["analyze"])
app.include_router(study.router, prefix="/api/v1", tags=["study"])
app.include_router(progress.router, prefix="/api/v1", tags=["progress"])
app.include_router(chat.router, prefix="/api/v1", tags=["chat"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "studyguide.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
