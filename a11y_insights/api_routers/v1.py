from fastapi import APIRouter

from a11y_insights.features.analytics.routes.analytics import router as analytics_router

api_router = APIRouter()

api_router.include_router(analytics_router)
