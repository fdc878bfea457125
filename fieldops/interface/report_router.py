"""Employee performance report endpoints (admin-only)."""

from fastapi import APIRouter, Depends, Query

from fieldops.domain.report import EmployeeReport, EmployeesSummary, SummarySort
from fieldops.domain.task import SortOrder
from fieldops.domain.user import Actor
from fieldops.interface.auth import require_report_viewer
from fieldops.services import report_service


router = APIRouter(prefix="/v1/reports", tags=["reports"])


@router.get("/employees/{user_id}")
async def get_employee_report(
    user_id: str,
    start_date: str = Query(..., description="YYYY-MM-DD, inclusive"),
    end_date: str = Query(..., description="YYYY-MM-DD, inclusive"),
    timezone: str | None = Query(default=None, description="IANA timezone; defaults to the server setting"),
    _viewer: Actor = Depends(require_report_viewer),
) -> EmployeeReport:
    return await report_service.get_employee_report(
        user_id=user_id, start_date=start_date, end_date=end_date, timezone=timezone
    )


@router.get("/summary")
async def get_employees_summary(
    start_date: str = Query(...),
    end_date: str = Query(...),
    timezone: str | None = Query(default=None),
    sort: SummarySort = Query(default=SummarySort.REVENUE),
    sort_order: SortOrder = Query(default=SortOrder.DESC),
    _viewer: Actor = Depends(require_report_viewer),
) -> EmployeesSummary:
    return await report_service.get_employees_summary(
        start_date=start_date, end_date=end_date, timezone=timezone, sort=sort, sort_order=sort_order
    )
