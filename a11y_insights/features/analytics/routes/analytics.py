from fastapi import APIRouter, status

from a11y_insights.features.analytics.services.connection_validator import ConnectionValidator
from a11y_insights.platform.response import api_response

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/health")
def analytics_health():
    """
    Staged warehouse diagnostic: config, dataset, auth/api.

    The BigQuery client blocks, so this stays a sync route and runs in the
    threadpool.
    """
    report = ConnectionValidator().validate()
    if report.ok:
        return api_response(
            data=report.model_dump(),
            message="Analytics warehouse reachable",
            status_code=status.HTTP_200_OK,
        )
    return api_response(
        data=report.model_dump(),
        message=f"Analytics warehouse check failed at stage '{report.stage}'",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        errors=report.config_errors or ([report.error] if report.error else None),
    )
