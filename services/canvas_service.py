"""Canvas service layer for grades, assignment status and display strings."""

import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from constants import STATE_GRADED, STATE_SUBMITTED, UPCOMING_WINDOW_DAYS
from services.calendar_service import format_score
from utils.datetime_utils import format_local, parse_optional_datetime

AssignmentPair = Tuple[str, Mapping[str, Any]]

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def extract_grades(courses: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """One grade summary per course where the user has a student enrollment."""
    grades: List[Dict[str, Any]] = []
    for course in courses:
        enrollment = next(
            (e for e in course.get("enrollments") or [] if e.get("type") == "student"),
            None,
        )
        if enrollment is None:
            continue
        grades.append({
            "course_id": course["id"],
            "course_name": course.get("name") or "Unnamed",
            "current_score": enrollment.get("computed_current_score"),
            "current_grade": enrollment.get("computed_current_grade"),
            "final_score": enrollment.get("computed_final_score"),
            "final_grade": enrollment.get("computed_final_grade"),
        })
    return grades


def _is_past_due(assignment: Mapping[str, Any], now: datetime) -> bool:
    due_at = parse_optional_datetime(assignment.get("due_at"))
    return due_at is not None and due_at < now


def assignment_status_label(assignment: Mapping[str, Any], now: datetime) -> str:
    """Status column text for the assignment list."""
    submission = assignment.get("submission")
    if submission:
        state = submission.get("workflow_state")
        if state == STATE_GRADED:
            score = submission.get("score")
            if score is None:
                return "Graded"
            return format_score(score, assignment.get("points_possible"))
        if state == STATE_SUBMITTED:
            return "Submitted"
        if _is_past_due(assignment, now):
            return "Missing!" if submission.get("missing") else "Past due"
        return "Not submitted"
    if _is_past_due(assignment, now):
        return "Past due"
    return "-"


def status_priority(assignment: Mapping[str, Any], now: datetime) -> int:
    """Sort rank: missing 0, past due 1, pending 2, submitted 3, graded 4."""
    submission = assignment.get("submission")
    if submission:
        state = submission.get("workflow_state")
        if state == STATE_GRADED:
            return 4
        if state == STATE_SUBMITTED:
            return 3
        if _is_past_due(assignment, now):
            return 0 if submission.get("missing") else 1
        return 2
    return 1 if _is_past_due(assignment, now) else 2


class AssignmentSort(Enum):
    DUE_ASC = "Due ↑"
    DUE_DESC = "Due ↓"
    COURSE = "Course"
    STATUS = "Status"

    @property
    def label(self) -> str:
        return self.value

    def next(self) -> "AssignmentSort":
        members = list(AssignmentSort)
        return members[(members.index(self) + 1) % len(members)]


def flatten_assignments(assignments: Mapping[str, Sequence[Mapping[str, Any]]],
                        course_filter: Optional[Set[str]] = None) -> List[AssignmentPair]:
    """(course name, assignment) pairs in course order; empty filter shows all."""
    return [
        (course_name, assignment)
        for course_name, items in assignments.items()
        if not course_filter or course_name in course_filter
        for assignment in items
    ]


def _due_sort_key(pair: AssignmentPair) -> Tuple[int, datetime]:
    due_at = parse_optional_datetime(pair[1].get("due_at"))
    if due_at is None:
        return (1, _FAR_FUTURE)
    return (0, due_at)


def sort_assignments(pairs: Sequence[AssignmentPair], mode: AssignmentSort,
                     now: datetime) -> List[AssignmentPair]:
    """Order assignment pairs for the list view. Undated work is always last."""
    pairs = list(pairs)
    if mode is AssignmentSort.DUE_ASC:
        return sorted(pairs, key=_due_sort_key)
    if mode is AssignmentSort.DUE_DESC:
        dated = [p for p in pairs if _due_sort_key(p)[0] == 0]
        undated = [p for p in pairs if _due_sort_key(p)[0] == 1]
        return sorted(dated, key=_due_sort_key, reverse=True) + undated
    if mode is AssignmentSort.STATUS:
        return sorted(pairs, key=lambda p: status_priority(p[1], now))
    return pairs


def upcoming_assignments(assignments: Mapping[str, Sequence[Mapping[str, Any]]], now: datetime,
                         days: int = UPCOMING_WINDOW_DAYS) -> List[AssignmentPair]:
    """Assignments due from today through ``days`` days ahead, soonest first."""
    horizon = now + timedelta(days=days)
    today = now.date()
    upcoming = []
    for pair in flatten_assignments(assignments):
        due_at = parse_optional_datetime(pair[1].get("due_at"))
        if due_at is not None and due_at.date() >= today and due_at <= horizon:
            upcoming.append(pair)
    return sorted(upcoming, key=_due_sort_key)


def focal_assignment_id(assignments: Mapping[str, Sequence[Mapping[str, Any]]],
                        now: datetime) -> Optional[int]:
    """Id of the soonest assignment due today or later that is not yet turned in."""
    today = now.date()
    for _, assignment in sorted(flatten_assignments(assignments), key=_due_sort_key):
        due_at = parse_optional_datetime(assignment.get("due_at"))
        if due_at is None or due_at.date() < today:
            continue
        state = (assignment.get("submission") or {}).get("workflow_state")
        if state not in (STATE_GRADED, STATE_SUBMITTED):
            return assignment.get("id")
    return None


_TAG_RE = re.compile(r"<[^>]*>")
_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&nbsp;": " ",
    "&#39;": "'",
    "&quot;": '"',
}


def strip_html(text: Optional[str]) -> str:
    """Crude HTML-to-text for announcement and description previews."""
    if not text:
        return ""
    out = _TAG_RE.sub(" ", text)
    for entity, char in _ENTITIES.items():
        out = out.replace(entity, char)
    return out


def _format_score(score: Optional[float], grade: Optional[str]) -> str:
    if score is None:
        return grade or "N/A"
    return f"{score:.1f}%" + (f" ({grade})" if grade else "")


def get_formatted_courses(courses: Sequence[Mapping[str, Any]]) -> List[str]:
    """Display strings for the course list, with the current grade when known."""
    grades = {g["course_id"]: g for g in extract_grades(courses)}
    formatted: List[str] = []

    for course in courses:
        course_id = course.get("id", "N/A")
        name = course.get("name") or "Unnamed Course"
        code = course.get("course_code", "")

        line = f"{course_id} – {code}: {name}" if code else f"{course_id} – {name}"
        grade = grades.get(course_id)
        if grade is not None:
            line += f" – {_format_score(grade['current_score'], grade['current_grade'])}"
        formatted.append(line)

    return formatted


def get_formatted_assignments(assignments: Sequence[Mapping[str, Any]], now: datetime) -> List[str]:
    """Display strings for one course's assignments."""
    if not assignments:
        return ["No assignments found."]

    formatted: List[str] = []
    for assignment in assignments:
        name = assignment.get("name") or "Untitled Assignment"
        due_at = assignment.get("due_at")
        points = assignment.get("points_possible") or 0

        if due_at:
            try:
                due_str = format_local(due_at)
            except ValueError:
                due_str = due_at
        else:
            due_str = "No due date"

        status = assignment_status_label(assignment, now)
        formatted.append(f"{name} – due {due_str} – {points:g} pts – {status}")

    return formatted
