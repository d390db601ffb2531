"""Canvas API endpoint functions."""

from typing import Any, Dict, Iterable, List

from canvas_api.client import CanvasAPIError, CanvasClient
from constants import ANNOUNCEMENTS_PER_PAGE


def _valid_items(data: Iterable[Any]) -> List[Dict[str, Any]]:
    """Drop malformed entries (non-objects or objects without an id)."""
    return [item for item in data if isinstance(item, dict) and item.get("id") is not None]


def _expect_object(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise CanvasAPIError(f"Canvas response expected an object for {what}")
    return data


def get_self(client: CanvasClient) -> Dict[str, Any]:
    """Fetch the profile of the token's owner."""
    return _expect_object(client.get("users/self"), "users/self")


def list_courses(client: CanvasClient) -> List[Dict[str, Any]]:
    """Fetch active courses with term and enrollment (grade) details."""
    data = client.fetch_all("courses", {
        "enrollment_state": "active",
        "include[]": ["total_students", "term", "enrollments"],
    })
    return _valid_items(data)


def get_course(client: CanvasClient, course_id: int) -> Dict[str, Any]:
    return _expect_object(client.get(f"courses/{course_id}"), f"courses/{course_id}")


def list_assignments(client: CanvasClient, course_id: int,
                     include_submission: bool = True) -> List[Dict[str, Any]]:
    """Fetch all assignments for a course, ordered by due date."""
    params: Dict[str, Any] = {"order_by": "due_at"}
    if include_submission:
        params["include[]"] = ["submission"]

    assignments = _valid_items(client.fetch_all(f"courses/{course_id}/assignments", params))
    for assignment in assignments:
        assignment.setdefault("course_id", course_id)
    return assignments


def get_assignment(client: CanvasClient, course_id: int, assignment_id: int) -> Dict[str, Any]:
    path = f"courses/{course_id}/assignments/{assignment_id}"
    return _expect_object(client.get(path), path)


def list_my_submissions(client: CanvasClient, course_id: int) -> List[Dict[str, Any]]:
    """Fetch the caller's own submissions across a course."""
    data = client.fetch_all(f"courses/{course_id}/students/submissions",
                            {"student_ids[]": ["self"]})
    return _valid_items(data)


def list_calendar_events(client: CanvasClient, context_codes: List[str], start_date: str,
                         end_date: str, event_type: str = "event") -> List[Dict[str, Any]]:
    """
    Fetch calendar entries in [start_date, end_date] for the given contexts.

    event_type is "event" for plain calendar events or "assignment" for
    assignment due dates rendered as events.
    """
    data = client.fetch_all("calendar_events", {
        "start_date": start_date,
        "end_date": end_date,
        "type": event_type,
        "context_codes[]": list(context_codes),
    })
    return _valid_items(data)


def list_announcements(client: CanvasClient, context_codes: List[str]) -> List[Dict[str, Any]]:
    data = client.fetch_all("announcements", {
        "per_page": ANNOUNCEMENTS_PER_PAGE,
        "latest_only": "false",
        "context_codes[]": list(context_codes),
    })
    return _valid_items(data)


def list_discussions(client: CanvasClient, course_id: int) -> List[Dict[str, Any]]:
    data = client.fetch_all(f"courses/{course_id}/discussion_topics",
                            {"per_page": ANNOUNCEMENTS_PER_PAGE})
    return _valid_items(data)


def submit_assignment(client: CanvasClient, course_id: int, assignment_id: int,
                      submission: Dict[str, Any]) -> Dict[str, Any]:
    """Create a submission; ``submission`` is the inner object of the request body."""
    path = f"courses/{course_id}/assignments/{assignment_id}/submissions"
    return _expect_object(client.post(path, {"submission": submission}), path)


def request_upload_slot(client: CanvasClient, course_id: int, assignment_id: int,
                        name: str, size: int, content_type: str) -> Dict[str, Any]:
    """Ask Canvas for a pre-authorized destination for one file's bytes."""
    path = f"courses/{course_id}/assignments/{assignment_id}/submissions/self/files"
    payload = {"name": name, "size": size, "content_type": content_type}
    return _expect_object(client.post(path, payload), path)
