"""Task execution: context building, reply parsing, and the task engine."""

from switchboard.tasks.engine import TaskEngine
from switchboard.tasks.models import BrainstormChoice, OperatorChoice, Plan, ReviewVerdict
from switchboard.tasks.runner import normalize_task_mode

__all__ = [
    "BrainstormChoice",
    "OperatorChoice",
    "Plan",
    "ReviewVerdict",
    "TaskEngine",
    "normalize_task_mode",
]
