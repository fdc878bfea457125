"""Per-employee performance reports over local-time date ranges."""

import logging
import re
from collections import defaultdict
from datetime import UTC, date, datetime, time, tzinfo
from decimal import Decimal
from typing import Any

from dateutil import tz
from dateutil.parser import isoparse

from fieldops.core import db_client
from fieldops.core.config import settings
from fieldops.core.errors import ValidationFailedError
from fieldops.core.logging import span
from fieldops.domain.activity import ActivityAction
from fieldops.domain.report import (
    EmployeeReport,
    EmployeesSummary,
    EmployeeSummary,
    ReportEmployee,
    ReportMetrics,
    ReportPeriod,
    ReportTask,
    SummarySort,
    SummaryTotals,
)
from fieldops.domain.task import SortOrder, TaskStatus
from fieldops.services import user_service
from fieldops.services.revenue import split_revenue


logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
END_OF_DAY = time(23, 59, 59, 999000)


def parse_report_date(value: str, *, field: str) -> date:
    """Parse a strict YYYY-MM-DD date.

    Raises:
        ValidationFailedError: If the value is not a real calendar date in that format
    """
    if not _DATE_PATTERN.match(value):
        raise ValidationFailedError(fields={field: ["Ngày phải có định dạng YYYY-MM-DD"]})
    try:
        return date.fromisoformat(value)
    except ValueError as err:
        raise ValidationFailedError(fields={field: ["Ngày không hợp lệ"]}) from err


def resolve_timezone(name: str) -> tzinfo:
    """Resolve an IANA timezone name.

    Raises:
        ValidationFailedError: If the name is empty or unknown
    """
    zone = tz.gettz(name) if name and name.strip() else None
    if zone is None:
        raise ValidationFailedError(fields={"timezone": [f"Múi giờ không hợp lệ: {name}"]})
    return zone


def day_bounds(start: date, end: date, zone: tzinfo) -> tuple[datetime, datetime]:
    """UTC instants for 00:00:00.000 on `start` and 23:59:59.999 on `end` in `zone`."""
    lower = datetime.combine(start, time.min, tzinfo=zone).astimezone(UTC)
    upper = datetime.combine(end, END_OF_DAY, tzinfo=zone).astimezone(UTC)
    return lower, upper


def validate_period(start_date: str, end_date: str, timezone: str) -> tuple[datetime, datetime, tzinfo]:
    """Check a report period and return its UTC bounds and timezone."""
    start = parse_report_date(start_date, field="start_date")
    end = parse_report_date(end_date, field="end_date")
    if end < start:
        raise ValidationFailedError(fields={"end_date": ["Ngày kết thúc phải sau hoặc bằng ngày bắt đầu"]})
    if (end - start).days > settings.report_max_range_days:
        raise ValidationFailedError(
            fields={"end_date": [f"Khoảng thời gian tối đa là {settings.report_max_range_days} ngày"]}
        )
    zone = resolve_timezone(timezone)
    lower, upper = day_bounds(start, end, zone)
    return lower, upper, zone


def count_days_worked(check_in_times: list[str], zone: tzinfo) -> int:
    """Distinct local calendar dates among check-in timestamps."""
    return len({isoparse(created_at).astimezone(zone).date() for created_at in check_in_times})


def _task_workers(task: dict[str, Any]) -> list[str]:
    """Assignees at completion, or current assignees for rows without a snapshot."""
    workers = task["completed_assignee_ids"]
    if workers is None:
        workers = task["assignee_ids"]
    return list(dict.fromkeys(workers))


def _task_revenue(task: dict[str, Any]) -> Decimal | None:
    return Decimal(task["expected_revenue"]) if task["expected_revenue"] is not None else None


async def _completed_tasks(lower: datetime, upper: datetime) -> list[dict[str, Any]]:
    return await db_client.fetch_all(
        """SELECT * FROM tasks
        WHERE status = ? AND deleted_at IS NULL AND completed_at >= ? AND completed_at <= ?
        ORDER BY completed_at DESC, id DESC""",
        (TaskStatus.COMPLETED, db_client.format_timestamp(lower), db_client.format_timestamp(upper)),
    )


async def _check_ins(lower: datetime, upper: datetime, user_ids: list[str]) -> list[dict[str, Any]]:
    if not user_ids:
        return []
    placeholders = ", ".join("?" for _ in user_ids)
    return await db_client.fetch_all(
        f"""SELECT user_id, created_at FROM activities
        WHERE action = ? AND created_at >= ? AND created_at <= ? AND user_id IN ({placeholders})""",  # noqa: S608
        (
            ActivityAction.TASK_CHECKED_IN,
            db_client.format_timestamp(lower),
            db_client.format_timestamp(upper),
            *user_ids,
        ),
    )


async def get_employee_report(
    *,
    user_id: str,
    start_date: str,
    end_date: str,
    timezone: str | None = None,
) -> EmployeeReport:
    """Days worked, tasks completed and revenue share for one worker.

    Day boundaries are taken in the report's timezone, so a check-in at
    01:00 local time counts toward that local day whatever the UTC date.

    Args:
        user_id: External ID of the worker
        start_date: First day of the period, YYYY-MM-DD, inclusive
        end_date: Last day of the period, YYYY-MM-DD, inclusive
        timezone: IANA timezone name; defaults to settings.default_timezone

    Returns:
        EmployeeReport with metrics and completed tasks, newest first

    Raises:
        ValidationFailedError: If the dates or timezone are invalid
        NotFoundError: If the user does not exist
    """
    with span("report_service.get_employee_report"):
        timezone = timezone or settings.default_timezone
        lower, upper, zone = validate_period(start_date, end_date, timezone)
        user = await user_service.get_user(user_id=user_id)

        check_ins = await _check_ins(lower, upper, [user_id])
        tasks = [task for task in await _completed_tasks(lower, upper) if user_id in _task_workers(task)]

        report_tasks = []
        total_revenue = Decimal(0)
        for task in tasks:
            workers = _task_workers(task)
            revenue = _task_revenue(task)
            share = split_revenue(revenue, len(workers))
            total_revenue += share
            report_tasks.append(
                ReportTask(
                    id=task["id"],
                    title=task["title"],
                    completed_at=task["completed_at"],
                    revenue=revenue or Decimal(0),
                    revenue_share=share,
                    worker_count=len(workers),
                )
            )

        logger.info(
            "Employee report generated",
            extra={"user_id": user_id, "start_date": start_date, "end_date": end_date, "tasks": len(report_tasks)},
        )
        return EmployeeReport(
            employee=ReportEmployee(id=user.id, name=user.name, email=user.email),
            period=ReportPeriod(start_date=start_date, end_date=end_date, timezone=timezone),
            metrics=ReportMetrics(
                days_worked=count_days_worked([row["created_at"] for row in check_ins], zone),
                tasks_completed=len(report_tasks),
                total_revenue=total_revenue,
            ),
            tasks=report_tasks,
        )


async def get_employees_summary(
    *,
    start_date: str,
    end_date: str,
    timezone: str | None = None,
    sort: SummarySort = SummarySort.REVENUE,
    sort_order: SortOrder = SortOrder.DESC,
) -> EmployeesSummary:
    """Metrics for every non-banned employee, from two batch queries.

    Totals count a task shared by several employees once.
    """
    with span("report_service.get_employees_summary"):
        timezone = timezone or settings.default_timezone
        lower, upper, zone = validate_period(start_date, end_date, timezone)
        period = ReportPeriod(start_date=start_date, end_date=end_date, timezone=timezone)

        users = await user_service.list_users()
        user_ids = [user.id for user in users]

        tasks = await _completed_tasks(lower, upper)
        check_ins = await _check_ins(lower, upper, user_ids)

        check_ins_by_user: dict[str, list[str]] = defaultdict(list)
        for row in check_ins:
            check_ins_by_user[row["user_id"]].append(row["created_at"])

        revenue_by_user: dict[str, Decimal] = defaultdict(Decimal)
        tasks_by_user: dict[str, int] = defaultdict(int)
        counted_tasks: set[int] = set()
        known = set(user_ids)
        for task in tasks:
            workers = _task_workers(task)
            if not workers:
                continue
            share = split_revenue(_task_revenue(task), len(workers))
            for worker_id in workers:
                if worker_id not in known:
                    continue
                revenue_by_user[worker_id] += share
                tasks_by_user[worker_id] += 1
                counted_tasks.add(task["id"])

        employees = [
            EmployeeSummary(
                user_id=user.id,
                name=user.name,
                email=user.email,
                days_worked=count_days_worked(check_ins_by_user[user.id], zone),
                tasks_completed=tasks_by_user[user.id],
                total_revenue=revenue_by_user[user.id],
            )
            for user in users
        ]

        sort_keys = {
            SummarySort.REVENUE: lambda e: e.total_revenue,
            SummarySort.TASKS: lambda e: e.tasks_completed,
            SummarySort.NAME: lambda e: e.name.casefold(),
        }
        employees.sort(key=sort_keys[sort], reverse=sort_order == SortOrder.DESC)

        totals = SummaryTotals(
            total_employees=len(employees),
            active_employees=sum(1 for e in employees if e.tasks_completed > 0 or e.days_worked > 0),
            total_revenue=sum((e.total_revenue for e in employees), Decimal(0)),
            total_tasks=len(counted_tasks),
        )
        logger.info("Employees summary generated", extra={"employees": totals.total_employees})
        return EmployeesSummary(period=period, employees=employees, totals=totals)
