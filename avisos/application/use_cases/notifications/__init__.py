"""Public helpers for emitting and managing notifications."""

from . import inbox
from .events import (
    notify_added_to_course,
    notify_forum_message,
    notify_grade_posted,
    notify_submission_received,
    notify_task_closed,
    notify_task_created,
    notify_task_due_soon,
    notify_welcome,
)

__all__ = [
    "inbox",
    "notify_added_to_course",
    "notify_forum_message",
    "notify_grade_posted",
    "notify_submission_received",
    "notify_task_closed",
    "notify_task_created",
    "notify_task_due_soon",
    "notify_welcome",
]
