from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import UserRole
from ...api.deps import require_minimum_role
from ...services.analytics_service import AnalyticsService, DEFAULT_PERIOD
from ...schemas.analytics import AnalyticsResponse

router = APIRouter(prefix="/analytics", tags=["Analytics"])

@router.get(
    "",
    response_model=AnalyticsResponse,
    dependencies=[Depends(require_minimum_role(UserRole.DOCTOR))]
)
def get_analytics(
    period: str = DEFAULT_PERIOD,
    db: Session = Depends(get_db)
):
    """Platform statistics for the last 7, 30 or 90 days.

    Restricted to doctors and admins on purpose: the figures cover every
    patient on the platform, so patients are refused.
    """
    return AnalyticsService(db).summary(period)
