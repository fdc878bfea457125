"""Revenue sharing between the workers assigned to a task."""

from decimal import Decimal


ZERO = Decimal(0)


def split_revenue(expected_revenue: Decimal | None, worker_count: int) -> Decimal:
    """Per-worker share of a task's expected revenue.

    Returns 0 when the revenue is unknown. Otherwise the exact decimal
    quotient; shares are neither rounded nor redistributed.

    Raises:
        ValueError: If worker_count is less than 1
    """
    if worker_count < 1:
        msg = f"worker_count must be at least 1, got {worker_count}"
        raise ValueError(msg)
    if expected_revenue is None:
        return ZERO
    return expected_revenue / worker_count
