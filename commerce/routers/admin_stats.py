# commerce/routers/admin_stats.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from commerce.core.auth import require_admin
from commerce.database import get_session
from commerce.routers.deps import get_stats_service
from commerce.schemas.stats import AdminDashboardStats
from commerce.services.stats_service import StatsService

router = APIRouter(prefix="/admin/stats", tags=["Admin Stats"])


@router.get(
    "",
    response_model=AdminDashboardStats,
    dependencies=[Depends(require_admin)],
)
def get_admin_dashboard_stats(
    year: int | None = None,
    month: int | None = None,
    session: Session = Depends(get_session),
    service: StatsService = Depends(get_stats_service),
):
    """
    Aggregated statistics for the admin dashboard.

    Query params (optional):
      - year: defaults to current year
      - month: 1–12, defaults to current month
    """
    return service.get_admin_dashboard_stats(
        session=session,
        year=year,
        month=month,
    )
