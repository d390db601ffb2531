"""Services package for business logic operations."""

from .calendar_service import CalendarItem, build_calendar_items, find_today_index
from .canvas_service import extract_grades, get_formatted_assignments, get_formatted_courses
from .submission_service import SubmissionKind, SubmissionRequest, UploadSlot, submit
from .submission_wizard import SubmissionWizard, WizardState

__all__ = [
    'CalendarItem',
    'SubmissionKind',
    'SubmissionRequest',
    'SubmissionWizard',
    'UploadSlot',
    'WizardState',
    'build_calendar_items',
    'extract_grades',
    'find_today_index',
    'get_formatted_assignments',
    'get_formatted_courses',
    'submit',
]
