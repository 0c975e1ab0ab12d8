from .action_items import ActionItem, Urgency, build_action_items, rank_action_items
from .compliance import CellState, build_compliance_calendar, submission_state
from .due_status import DueState, classify, classify_cadence, sort_most_overdue
from .errors import ComplianceError, ConfigurationError, InputError, StoreReadError

__all__ = [
    "ActionItem",
    "Urgency",
    "build_action_items",
    "rank_action_items",
    "CellState",
    "build_compliance_calendar",
    "submission_state",
    "DueState",
    "classify",
    "classify_cadence",
    "sort_most_overdue",
    "ComplianceError",
    "ConfigurationError",
    "InputError",
    "StoreReadError",
]
