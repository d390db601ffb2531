"""Merge calendar events and assignment due dates into one timeline."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from constants import KIND_ASSIGNMENT, KIND_EVENT, STATE_GRADED, STATE_SUBMITTED
from utils.datetime_utils import parse_optional_datetime


@dataclass(frozen=True)
class CalendarItem:
    """One entry of the merged timeline."""
    start_at: Optional[datetime]
    title: str
    kind: str
    course_name: Optional[str] = None
    status: Optional[str] = None
    assignment_id: Optional[int] = None


def format_score(score: float, points_possible: Optional[float]) -> str:
    """'8.5/10' style score string."""
    return f"{score:.1f}/{(points_possible or 0):g}"


def assignment_status(assignment: Mapping[str, Any], now: datetime) -> Optional[str]:
    """
    Short status for a timeline entry, derived from the embedded submission.

    Graded work shows its score, submitted work "Submitted"; otherwise past
    due work is "Missing!" when Canvas flags it missing and "Past due" when
    not. Anything else has no status.
    """
    submission = assignment.get("submission") or {}
    state = submission.get("workflow_state")

    if state == STATE_GRADED:
        score = submission.get("score")
        if score is None:
            return "Graded"
        return format_score(score, assignment.get("points_possible"))
    if state == STATE_SUBMITTED:
        return "Submitted"

    due_at = parse_optional_datetime(assignment.get("due_at"))
    if due_at is not None and due_at < now:
        return "Missing!" if submission.get("missing") else "Past due"
    return None


def _event_assignment_id(event: Mapping[str, Any]) -> Optional[int]:
    embedded = event.get("assignment")
    if isinstance(embedded, dict):
        return embedded.get("id")
    return None


def sort_by_start(items: Iterable[CalendarItem]) -> List[CalendarItem]:
    """Ascending by start time; undated items keep their order at the tail."""
    items = list(items)
    dated = [item for item in items if item.start_at is not None]
    undated = [item for item in items if item.start_at is None]
    dated.sort(key=lambda item: item.start_at)
    return dated + undated


def build_calendar_items(calendar_events: Sequence[Mapping[str, Any]],
                         assignments: Mapping[str, Sequence[Mapping[str, Any]]],
                         now: Optional[datetime] = None,
                         course_names: Optional[Mapping[str, str]] = None) -> List[CalendarItem]:
    """
    Build the deduplicated, time-ordered timeline.

    Args:
        calendar_events: Events as returned by the calendar_events endpoint.
        assignments: Course name -> assignments, in API order.
        now: Reference time for due-date status; defaults to the current time.
        course_names: Optional context code -> course name lookup for events.

    Returns:
        A fresh list of CalendarItem. Assignments already represented by an
        event's embedded assignment reference are not added a second time.
    """
    now = now or datetime.now(timezone.utc)
    course_names = course_names or {}

    covered_ids = {
        assignment_id for assignment_id in map(_event_assignment_id, calendar_events)
        if assignment_id is not None
    }

    items: List[CalendarItem] = []
    seen_ids: set = set()
    for event in calendar_events:
        assignment_id = _event_assignment_id(event)
        if assignment_id is not None:
            if assignment_id in seen_ids:
                continue
            seen_ids.add(assignment_id)

        items.append(CalendarItem(
            start_at=parse_optional_datetime(event.get("start_at")),
            title=event.get("title") or "Untitled",
            kind=KIND_ASSIGNMENT if event.get("type") == KIND_ASSIGNMENT else KIND_EVENT,
            course_name=course_names.get(event.get("context_code")),
            assignment_id=assignment_id,
        ))

    for course_name, course_assignments in assignments.items():
        for assignment in course_assignments:
            due_at = parse_optional_datetime(assignment.get("due_at"))
            if due_at is None:
                continue
            assignment_id = assignment.get("id")
            if assignment_id in covered_ids or assignment_id in seen_ids:
                continue
            seen_ids.add(assignment_id)

            items.append(CalendarItem(
                start_at=due_at,
                title=assignment.get("name") or "Unnamed",
                kind=KIND_ASSIGNMENT,
                course_name=course_name,
                status=assignment_status(assignment, now),
                assignment_id=assignment_id,
            ))

    return sort_by_start(items)


def find_today_index(items: Sequence[CalendarItem], now: Optional[datetime] = None) -> int:
    """Index of the first item dated today or later; the last item if none is."""
    today = (now or datetime.now(timezone.utc)).date()
    for index, item in enumerate(items):
        if item.start_at is not None and item.start_at.date() >= today:
            return index
    return max(len(items) - 1, 0)


def context_course_names(courses: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """Map ``course_{id}`` context codes to course names."""
    return {
        f"course_{course['id']}": course.get("name") or "Unnamed"
        for course in courses if course.get("id") is not None
    }
