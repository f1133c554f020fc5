import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from a11y_insights.api_routers.v1 import api_router
from a11y_insights.features.health.routes.health import router as health_router
from a11y_insights.platform.config import settings
from a11y_insights.platform.exceptions import add_exception_handlers

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Accessibility heuristics and scan analytics ingestion",
    version="1.0.0",
    debug=settings.DEBUG,
)


@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": settings.APP_NAME,
        "description": "Heuristic accessibility evaluation with warehouse-backed scan analytics.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
