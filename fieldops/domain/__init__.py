"""Domain models and DTOs."""

from fieldops.domain.activity import Activity, ActivityAction, ActivityPage
from fieldops.domain.attachment import Attachment, UploadedFile
from fieldops.domain.create_models import (
    CheckEventInput,
    CommentCreate,
    CustomerInput,
    GeoLocationInput,
    PaymentCreate,
    TaskCreate,
    UserCreate,
)
from fieldops.domain.money import Money
from fieldops.domain.payment import Payment, PaymentSummary, TaskPayments
from fieldops.domain.report import EmployeeReport, EmployeesSummary, SummarySort
from fieldops.domain.task import Customer, GeoLocation, Task, TaskPage, TaskStatus
from fieldops.domain.update_models import (
    CustomerUpdate,
    ExpectedRevenueUpdate,
    PaymentUpdate,
    TaskAssigneesUpdate,
    TaskStatusUpdate,
    TaskUpdate,
    UserBanUpdate,
    UserRolesUpdate,
)
from fieldops.domain.user import Actor, User, UserRole


__all__ = [
    "Activity",
    "ActivityAction",
    "ActivityPage",
    "Actor",
    "Attachment",
    "CheckEventInput",
    "CommentCreate",
    "Customer",
    "CustomerInput",
    "CustomerUpdate",
    "EmployeeReport",
    "EmployeesSummary",
    "ExpectedRevenueUpdate",
    "GeoLocation",
    "GeoLocationInput",
    "Money",
    "Payment",
    "PaymentCreate",
    "PaymentSummary",
    "PaymentUpdate",
    "SummarySort",
    "Task",
    "TaskAssigneesUpdate",
    "TaskCreate",
    "TaskPage",
    "TaskPayments",
    "TaskStatus",
    "TaskStatusUpdate",
    "TaskUpdate",
    "UploadedFile",
    "User",
    "UserBanUpdate",
    "UserCreate",
    "UserRole",
    "UserRolesUpdate",
]
