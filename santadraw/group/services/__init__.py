"""Group services: membership, draws and lifecycle."""

from .draw import DrawEngine, assignment_for, recipient_answers
from .lifecycle import GroupLifecycle
from .membership import MembershipService

__all__ = [
    "DrawEngine",
    "GroupLifecycle",
    "MembershipService",
    "assignment_for",
    "recipient_answers",
]
