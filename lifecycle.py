"""
Borrow-request lifecycle and pricing rules.

A request moves pending -> negotiating -> accepted/rejected -> active ->
completed, with cancelled and overdue as side exits. Every route that
changes a request's status goes through ensure_transition().
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from models.request_models import PaymentStatus, RequestStatus, StatusGroup


class InvalidTransition(Exception):
    def __init__(self, current: RequestStatus, target: RequestStatus):
        self.current = RequestStatus(current)
        self.target = RequestStatus(target)
        super().__init__(f"Cannot move request from '{self.current.value}' to '{self.target.value}'")


TRANSITIONS = {
    RequestStatus.PENDING: {
        RequestStatus.NEGOTIATING,
        RequestStatus.ACCEPTED,
        RequestStatus.REJECTED,
        RequestStatus.CANCELLED,
    },
    RequestStatus.NEGOTIATING: {
        RequestStatus.NEGOTIATING,
        RequestStatus.ACCEPTED,
        RequestStatus.REJECTED,
        RequestStatus.CANCELLED,
    },
    RequestStatus.ACCEPTED: {RequestStatus.ACTIVE, RequestStatus.CANCELLED},
    RequestStatus.ACTIVE: {RequestStatus.COMPLETED, RequestStatus.OVERDUE},
    RequestStatus.OVERDUE: {RequestStatus.COMPLETED},
    RequestStatus.REJECTED: set(),
    RequestStatus.CANCELLED: set(),
    RequestStatus.COMPLETED: set(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)
NEGOTIABLE_STATUSES = frozenset({RequestStatus.PENDING, RequestStatus.NEGOTIATING})
CANCELLABLE_STATUSES = frozenset({RequestStatus.PENDING, RequestStatus.NEGOTIATING, RequestStatus.ACCEPTED})

STATUS_GROUPS = {
    StatusGroup.PENDING: (RequestStatus.PENDING, RequestStatus.NEGOTIATING),
    StatusGroup.ACTIVE: (RequestStatus.ACCEPTED, RequestStatus.ACTIVE, RequestStatus.OVERDUE),
    StatusGroup.COMPLETED: (RequestStatus.COMPLETED, RequestStatus.REJECTED, RequestStatus.CANCELLED),
}

PROGRESS = {
    RequestStatus.PENDING: 25,
    RequestStatus.NEGOTIATING: 50,
    RequestStatus.ACCEPTED: 75,
    RequestStatus.ACTIVE: 75,
    RequestStatus.OVERDUE: 75,
    RequestStatus.COMPLETED: 100,
}


def can_transition(current: Union[RequestStatus, str], target: Union[RequestStatus, str]) -> bool:
    return RequestStatus(target) in TRANSITIONS[RequestStatus(current)]


def ensure_transition(current: Union[RequestStatus, str], target: Union[RequestStatus, str]) -> RequestStatus:
    """Return the target status, or raise InvalidTransition."""
    if not can_transition(current, target):
        raise InvalidTransition(current, target)
    return RequestStatus(target)


def is_terminal(status: Union[RequestStatus, str]) -> bool:
    return RequestStatus(status) in TERMINAL_STATUSES


def is_chat_open(status: Union[RequestStatus, str]) -> bool:
    return not is_terminal(status)


def is_negotiable(status: Union[RequestStatus, str]) -> bool:
    return RequestStatus(status) in NEGOTIABLE_STATUSES


def status_group(status: Union[RequestStatus, str]) -> StatusGroup:
    status = RequestStatus(status)
    for group, members in STATUS_GROUPS.items():
        if status in members:
            return group
    raise ValueError(f"Status '{status.value}' belongs to no group")


def progress_percent(status: Union[RequestStatus, str]) -> int:
    return PROGRESS.get(RequestStatus(status), 0)


def available_actions(
    status: Union[RequestStatus, str],
    payment_status: Optional[Union[PaymentStatus, str]] = None,
) -> List[str]:
    """Actions a participant can take on a request in the given state."""
    status = RequestStatus(status)
    paid = payment_status is not None and PaymentStatus(payment_status) == PaymentStatus.COMPLETED

    if status in NEGOTIABLE_STATUSES:
        return ["chat"]
    if status == RequestStatus.ACCEPTED:
        return ["chat", "complete"] if paid else ["chat", "payment"]
    if status in (RequestStatus.ACTIVE, RequestStatus.OVERDUE):
        return ["chat", "complete"]
    if status == RequestStatus.COMPLETED:
        return ["review"]
    return []


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def rental_days(start_date: Union[date, datetime], end_date: Union[date, datetime]) -> int:
    """Whole days covered by a rental; a same-day rental counts as one."""
    start, end = _as_date(start_date), _as_date(end_date)
    if end < start:
        raise ValueError("end_date must not be before start_date")
    return max((end - start).days, 1)


def item_rate(item: Dict[str, Any]) -> float:
    rate = item.get("hourly_rate") if item.get("is_service") else item.get("daily_rate")
    return float(rate or 0)


def rate_unit(item: Dict[str, Any]) -> str:
    return "hour" if item.get("is_service") else "day"


def compute_total(rate: float, duration_days: int) -> float:
    if rate < 0 or duration_days < 0:
        raise ValueError("rate and duration must be non-negative")
    return round(rate * duration_days, 2)


def _money(amount: float) -> str:
    amount = float(amount)
    return str(int(amount)) if amount.is_integer() else f"{amount:.2f}".rstrip("0").rstrip(".")


def offer_content(amount: float, duration_days: int, unit: str) -> str:
    return f"Offer: ${_money(amount)}/{unit} for {duration_days} days"


def acceptance_content(amount: float, duration_days: int, unit: str) -> str:
    return f"Offer accepted! Final terms: ${_money(amount)}/{unit} for {duration_days} days"


def payment_request_content(total_cost: float) -> str:
    return f"Payment requested: ${total_cost:.2f}"
