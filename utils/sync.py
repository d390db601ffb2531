"""Canvas data synchronization: one background pass, collected by polling."""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from canvas_api.client import CanvasAPIError, CanvasClient
from canvas_api.endpoints import (
    get_self,
    list_announcements,
    list_assignments,
    list_calendar_events,
    list_courses,
)
from config import CALENDAR_WINDOW_DAYS
from constants import UNNAMED_COURSE
from storage.cache_manager import CacheSnapshot, save_cache
from utils.background import TaskHandle, make_executor, run_in_background
from utils.datetime_utils import date_window, parse_optional_datetime, utc_now

logger = logging.getLogger(__name__)

SaveFn = Callable[[CacheSnapshot], Optional[str]]


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync pass, handed from the background to the foreground."""
    fetched_at: datetime
    user: Optional[Dict[str, Any]] = None
    courses: List[Dict[str, Any]] = field(default_factory=list)
    assignments: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    calendar_events: List[Dict[str, Any]] = field(default_factory=list)
    announcements: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    complete: bool = True

    def to_snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(
            cached_at=self.fetched_at,
            user=self.user,
            courses=self.courses,
            assignments=self.assignments,
            calendar_events=self.calendar_events,
            announcements=self.announcements,
        )


def _course_label(course: Dict[str, Any], taken: Dict[str, Any]) -> str:
    name = course.get("name") or UNNAMED_COURSE
    if name in taken:
        name = f"{name} (#{course['id']})"
    return name


def _sort_events(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    dated = []
    undated = []
    for event in events:
        start = parse_optional_datetime(event.get("start_at"))
        if start is None:
            undated.append(event)
        else:
            dated.append((start, event))
    dated.sort(key=lambda pair: pair[0])
    return [event for _, event in dated] + undated


def _fetch_calendar(client: CanvasClient, context_codes: List[str], now: datetime) -> List[Dict[str, Any]]:
    start, end = date_window(now, CALENDAR_WINDOW_DAYS)
    try:
        events = list_calendar_events(client, context_codes, start, end, event_type="event")
    except CanvasAPIError as e:
        logger.warning("Skipping calendar events: %s", e)
        return []

    try:
        events.extend(list_calendar_events(client, context_codes, start, end, event_type="assignment"))
    except CanvasAPIError as e:
        logger.warning("Skipping assignment deadlines on the calendar: %s", e)

    return _sort_events(events)


def sync_canvas_data(client: CanvasClient, now: Optional[datetime] = None,
                     save: SaveFn = save_cache) -> SyncResult:
    """
    Run one full synchronization pass and persist it.

    Profile and course list are required; any failure there ends the pass
    with an error and nothing is cached. Per-course assignments, calendar
    events and announcements are best effort: failures are logged and the
    affected data is left out.
    """
    started = now or utc_now()
    logger.info("Syncing Canvas data...")

    try:
        user = get_self(client)
    except CanvasAPIError as e:
        return SyncResult(fetched_at=started, error=f"fetching profile: {e}", complete=False)

    try:
        courses = list_courses(client)
    except CanvasAPIError as e:
        return SyncResult(fetched_at=started, user=user,
                          error=f"fetching courses: {e}", complete=False)

    assignments: Dict[str, List[Dict[str, Any]]] = {}
    for course in courses:
        course_id = course["id"]
        try:
            course_assignments = list_assignments(client, course_id, include_submission=True)
        except CanvasAPIError as e:
            logger.warning("Skipping assignments for course %s: %s", course_id, e)
            continue
        if course_assignments:
            assignments[_course_label(course, assignments)] = course_assignments

    context_codes = [f"course_{course['id']}" for course in courses]
    calendar_events = _fetch_calendar(client, context_codes, started)

    try:
        announcements = list_announcements(client, context_codes)
    except CanvasAPIError as e:
        logger.warning("Skipping announcements: %s", e)
        announcements = []

    result = SyncResult(
        fetched_at=now or utc_now(),
        user=user,
        courses=courses,
        assignments=assignments,
        calendar_events=calendar_events,
        announcements=announcements,
    )

    save_error = save(result.to_snapshot())
    if save_error:
        result = replace(result, error=f"saving cache: {save_error}")

    logger.info("Canvas data synced: %d courses, %d with assignments",
                len(courses), len(assignments))
    return result


class SyncOrchestrator:
    """
    Runs sync passes in the background, at most one at a time.

    The foreground calls start() whenever it wants fresh data and poll()
    once per tick; neither blocks.
    """

    def __init__(self, client: CanvasClient, executor: Optional[Executor] = None,
                 save: SaveFn = save_cache) -> None:
        self.client = client
        self.save = save
        self._executor = executor or make_executor()
        self._handle: Optional[TaskHandle[SyncResult]] = None

    @property
    def in_flight(self) -> bool:
        return self._handle is not None

    def start(self) -> TaskHandle[SyncResult]:
        """Start a pass, or return the outstanding handle if one is running."""
        if self._handle is not None:
            return self._handle

        self._handle = run_in_background(
            self._executor, sync_canvas_data, self.client, save=self.save,
            on_error=lambda e: SyncResult(fetched_at=utc_now(), error=f"sync failed: {e}",
                                          complete=False),
        )
        return self._handle

    def poll(self) -> Optional[SyncResult]:
        """Collect the finished pass, if any. Frees the slot for the next start()."""
        if self._handle is None:
            return None
        result = self._handle.poll()
        if result is not None:
            self._handle = None
        return result

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
