"""Health check endpoint with optional database connectivity check."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from smart_city import __version__
from smart_city.core.config import settings
from smart_city.core.database import check_db_connected, get_db
from smart_city.schemas.common import ApiResponse
from smart_city.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=ApiResponse[HealthResponse])
def get_health(db: Session = Depends(get_db)) -> ApiResponse[HealthResponse]:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"

    return ApiResponse(
        message="Smart City API is running",
        data=HealthResponse(
            status="ok",
            environment=settings.APP_ENV,
            version=__version__,
            database=db_status,
        ),
    )
