from fieldops.services import (
    account_service,
    activity_service,
    attachment_service,
    payment_service,
    permissions,
    report_service,
    revenue,
    search_index,
    task_event_service,
    task_lookup,
    task_service,
    task_state_machine,
    user_service,
)


__all__ = [
    "account_service",
    "activity_service",
    "attachment_service",
    "payment_service",
    "permissions",
    "report_service",
    "revenue",
    "search_index",
    "task_event_service",
    "task_lookup",
    "task_service",
    "task_state_machine",
    "user_service",
]
