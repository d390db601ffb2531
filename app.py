"""Foreground controller: owns application state and applies background results."""

import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Dict, List, Mapping, Optional

from canvas_api.client import CanvasClient
from services.calendar_service import (
    CalendarItem,
    build_calendar_items,
    context_course_names,
    find_today_index,
)
from services.canvas_service import extract_grades, focal_assignment_id
from services.submission_service import submit
from services.submission_wizard import SubmissionWizard
from storage.cache_manager import CacheSnapshot
from utils.datetime_utils import format_local
from utils.sync import SyncOrchestrator, SyncResult

logger = logging.getLogger(__name__)


def _display_name(user: Optional[Mapping[str, Any]]) -> str:
    return (user or {}).get("name") or "Student"


class DashboardApp:
    """
    Application state for the dashboard.

    All mutation happens on the foreground thread: background work only
    produces SyncResult values and submission outcomes, which tick() picks
    up and applies. List cursors and scrolling belong to the renderer.
    """

    def __init__(self, client: CanvasClient, orchestrator: Optional[SyncOrchestrator] = None,
                 wizard: Optional[SubmissionWizard] = None) -> None:
        self.client = client
        self.orchestrator = orchestrator or SyncOrchestrator(client)
        self.wizard = wizard or SubmissionWizard(partial(submit, client))

        self.user: Optional[Dict[str, Any]] = None
        self.courses: List[Dict[str, Any]] = []
        self.assignments: Dict[str, List[Dict[str, Any]]] = {}
        self.calendar_events: List[Dict[str, Any]] = []
        self.calendar_items: List[CalendarItem] = []
        self.announcements: List[Dict[str, Any]] = []
        self.grades: List[Dict[str, Any]] = []
        self.focal_assignment_id: Optional[int] = None
        self.today_index = 0

        self.status_message = "Loading..."
        self.loading = False
        self.needs_refresh = False
        self.cached_at: Optional[datetime] = None

    def _apply_data(self, user, courses, assignments, calendar_events, announcements) -> None:
        self.user = user
        self.courses = courses
        self.assignments = assignments
        self.calendar_events = calendar_events
        self.announcements = announcements
        self.grades = extract_grades(courses)
        self.rebuild_calendar()

    def rebuild_calendar(self, now: Optional[datetime] = None) -> None:
        """Recompute everything derived from assignments and events."""
        now = now or datetime.now(timezone.utc)
        self.calendar_items = build_calendar_items(
            self.calendar_events, self.assignments, now=now,
            course_names=context_course_names(self.courses),
        )
        self.today_index = find_today_index(self.calendar_items, now)
        self.focal_assignment_id = focal_assignment_id(self.assignments, now)

    def load_from_cache(self, snapshot: CacheSnapshot) -> None:
        """Show a cached snapshot immediately, without touching the network."""
        self._apply_data(snapshot.user, snapshot.courses, snapshot.assignments,
                         snapshot.calendar_events, snapshot.announcements)
        self.cached_at = snapshot.cached_at
        self.loading = False
        synced = format_local(snapshot.cached_at, "%b %d %H:%M")
        self.status_message = (
            f"Hi, {_display_name(self.user)}! Showing cached data from {synced} - press r to refresh."
        )

    def start_sync(self) -> bool:
        """Kick off a background pass. Returns False if one is already running."""
        if self.orchestrator.in_flight:
            return False
        self.orchestrator.start()
        self.loading = True
        self.status_message = "Syncing in background..."
        return True

    def apply_sync_result(self, result: SyncResult) -> None:
        self.loading = False
        if result.complete:
            self._apply_data(result.user, result.courses, result.assignments,
                             result.calendar_events, result.announcements)
            self.cached_at = result.fetched_at

        if result.error:
            logger.warning("Sync finished with error: %s", result.error)
            self.status_message = f"Sync error: {result.error}"
        else:
            synced = format_local(result.fetched_at, "%b %d %H:%M")
            self.status_message = (
                f"Welcome, {_display_name(self.user)}! {len(self.courses)} courses loaded. "
                f"Synced {synced}."
            )

    def request_refresh(self) -> None:
        if not self.loading:
            self.needs_refresh = True

    def open_submission(self, assignment: Optional[Mapping[str, Any]],
                        course_id: Optional[int] = None) -> bool:
        opened = self.wizard.open(assignment, course_id)
        if not opened and self.wizard.status_message:
            self.status_message = self.wizard.status_message
        return opened

    def close_submission(self) -> None:
        """Any key on the result screen; a successful submission triggers a refresh."""
        if self.wizard.dismiss():
            self.needs_refresh = True

    def escape_submission(self) -> None:
        if self.wizard.escape():
            self.needs_refresh = True

    def tick(self) -> bool:
        """
        Per-frame housekeeping. Never blocks.

        Returns True when something changed that the renderer should redraw.
        """
        changed = False

        result = self.orchestrator.poll()
        if result is not None:
            self.apply_sync_result(result)
            changed = True

        if self.wizard.poll():
            changed = True

        if self.needs_refresh and not self.orchestrator.in_flight:
            self.needs_refresh = False
            self.start_sync()
            changed = True

        return changed

    def shutdown(self) -> None:
        self.orchestrator.shutdown(wait=False)
        self.wizard.shutdown(wait=False)
