"""Report domain models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from fieldops.domain.money import Money


class SummarySort(StrEnum):
    """Sort keys for the employees summary."""

    REVENUE = "revenue"
    TASKS = "tasks"
    NAME = "name"


class ReportEmployee(BaseModel):
    id: str
    name: str
    email: str | None = None


class ReportPeriod(BaseModel):
    start_date: str
    end_date: str
    timezone: str


class ReportMetrics(BaseModel):
    days_worked: int = Field(..., description="Distinct local dates with a check-in")
    tasks_completed: int
    total_revenue: Money = Field(..., description="Sum of this worker's revenue shares")


class ReportTask(BaseModel):
    id: int
    title: str
    completed_at: datetime
    revenue: Money = Field(..., description="Full expected revenue of the task")
    revenue_share: Money = Field(..., description="This worker's share of the revenue")
    worker_count: int


class EmployeeReport(BaseModel):
    """Per-worker performance over a date range."""

    employee: ReportEmployee
    period: ReportPeriod
    metrics: ReportMetrics
    tasks: list[ReportTask]


class EmployeeSummary(BaseModel):
    user_id: str
    name: str
    email: str | None = None
    days_worked: int
    tasks_completed: int
    total_revenue: Money


class SummaryTotals(BaseModel):
    total_employees: int
    active_employees: int = Field(..., description="Employees with a completed task or a check-in")
    total_revenue: Money
    total_tasks: int = Field(..., description="Distinct completed tasks, shared tasks counted once")


class EmployeesSummary(BaseModel):
    """Metrics for every active employee over a date range."""

    period: ReportPeriod
    employees: list[EmployeeSummary]
    totals: SummaryTotals
