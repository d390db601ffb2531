"""
Integration tests for the sync pass and orchestrator.
Tests fatal vs best-effort failures, caching and single-flight behavior.
"""

import unittest
from concurrent.futures import Future
from datetime import datetime, timezone
from unittest.mock import Mock, patch

from canvas_api.client import ApiError, CanvasClient, NetworkError, UnauthorizedError
from utils.sync import SyncOrchestrator, SyncResult, sync_canvas_data

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

COURSES = [
    {"id": 1, "name": "Math"},
    {"id": 2, "name": "Biology"},
    {"id": 3, "name": "Math"},
]


def assignments_for(client, course_id, include_submission=True):
    return {
        1: [{"id": 11, "name": "HW1", "course_id": 1}],
        2: [{"id": 21, "name": "Lab", "course_id": 2}],
        3: [{"id": 31, "name": "Proof", "course_id": 3}],
    }[course_id]


class TestSyncCanvasData(unittest.TestCase):
    """Integration tests for one sync pass with mocked endpoints."""

    def setUp(self):
        self.client = Mock(spec=CanvasClient)
        self.save = Mock(return_value=None)

        patches = {
            "get_self": Mock(return_value={"id": 9, "name": "Ada"}),
            "list_courses": Mock(return_value=list(COURSES)),
            "list_assignments": Mock(side_effect=assignments_for),
            "list_calendar_events": Mock(return_value=[]),
            "list_announcements": Mock(return_value=[{"id": 70, "title": "Hi"}]),
        }
        self.mocks = {}
        for name, mock in patches.items():
            patcher = patch(f"utils.sync.{name}", mock)
            self.mocks[name] = patcher.start()
            self.addCleanup(patcher.stop)

    def test_full_pass(self):
        result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertTrue(result.complete)
        self.assertIsNone(result.error)
        self.assertEqual(result.user["name"], "Ada")
        self.assertEqual(list(result.assignments), ["Math", "Biology", "Math (#3)"])
        self.assertEqual(result.announcements, [{"id": 70, "title": "Hi"}])
        self.assertEqual(result.fetched_at, NOW)
        self.save.assert_called_once()
        self.assertEqual(self.save.call_args.args[0], result.to_snapshot())

    def test_profile_failure_aborts_without_saving(self):
        self.mocks["get_self"].side_effect = UnauthorizedError()

        result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertFalse(result.complete)
        self.assertTrue(result.error.startswith("fetching profile:"))
        self.mocks["list_courses"].assert_not_called()
        self.save.assert_not_called()

    def test_course_list_failure_aborts_without_saving(self):
        self.mocks["list_courses"].side_effect = NetworkError(OSError("offline"))

        result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertFalse(result.complete)
        self.assertIn("fetching courses:", result.error)
        self.save.assert_not_called()

    def test_failed_course_is_left_out(self):
        def flaky(client, course_id, include_submission=True):
            if course_id == 2:
                raise ApiError(500, "oops")
            return assignments_for(client, course_id)

        self.mocks["list_assignments"].side_effect = flaky

        with self.assertLogs("utils.sync", level="WARNING"):
            result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertTrue(result.complete)
        self.assertIsNone(result.error)
        self.assertNotIn("Biology", result.assignments)
        self.assertEqual(len(result.courses), 3)

    def test_courses_without_assignments_are_omitted(self):
        self.mocks["list_assignments"].side_effect = None
        self.mocks["list_assignments"].return_value = []

        result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertEqual(result.assignments, {})

    def test_calendar_merges_both_types_sorted(self):
        def events(client, codes, start, end, event_type="event"):
            if event_type == "event":
                return [{"id": 1, "title": "Late", "start_at": "2025-03-20T10:00:00Z"},
                        {"id": 2, "title": "Undated", "start_at": None}]
            return [{"id": 3, "title": "Due", "start_at": "2025-03-12T10:00:00Z"}]

        self.mocks["list_calendar_events"].side_effect = events

        result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertEqual([e["title"] for e in result.calendar_events], ["Due", "Late", "Undated"])
        codes = self.mocks["list_calendar_events"].call_args.args[1]
        self.assertEqual(codes, ["course_1", "course_2", "course_3"])

    def test_assignment_calendar_failure_keeps_events(self):
        def events(client, codes, start, end, event_type="event"):
            if event_type == "assignment":
                raise ApiError(400, "bad type")
            return [{"id": 1, "title": "Lecture", "start_at": "2025-03-11T10:00:00Z"}]

        self.mocks["list_calendar_events"].side_effect = events

        result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertEqual([e["title"] for e in result.calendar_events], ["Lecture"])

    def test_announcement_failure_is_best_effort(self):
        self.mocks["list_announcements"].side_effect = ApiError(403, "disabled")

        result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertTrue(result.complete)
        self.assertEqual(result.announcements, [])

    def test_save_failure_is_reported_but_data_kept(self):
        self.save.return_value = "disk full"

        result = sync_canvas_data(self.client, now=NOW, save=self.save)

        self.assertTrue(result.complete)
        self.assertEqual(result.error, "saving cache: disk full")
        self.assertEqual(len(result.courses), 3)


class TestSyncOrchestrator(unittest.TestCase):
    """Tests for single-flight background sync."""

    def setUp(self):
        self.client = Mock(spec=CanvasClient)
        self.executor = Mock()
        self.future = Future()
        self.executor.submit.return_value = self.future
        self.orchestrator = SyncOrchestrator(self.client, executor=self.executor, save=Mock())

    def test_second_start_reuses_running_pass(self):
        first = self.orchestrator.start()
        second = self.orchestrator.start()

        self.assertIs(first, second)
        self.executor.submit.assert_called_once()
        self.assertTrue(self.orchestrator.in_flight)

    def test_poll_before_completion(self):
        self.orchestrator.start()

        self.assertIsNone(self.orchestrator.poll())
        self.assertTrue(self.orchestrator.in_flight)

    def test_poll_delivers_result_once_and_frees_slot(self):
        self.orchestrator.start()
        result = SyncResult(fetched_at=NOW)
        self.future.set_result(result)

        self.assertIs(self.orchestrator.poll(), result)
        self.assertIsNone(self.orchestrator.poll())
        self.assertFalse(self.orchestrator.in_flight)

        self.executor.submit.return_value = Future()
        self.orchestrator.start()
        self.assertEqual(self.executor.submit.call_count, 2)

    def test_unexpected_failure_becomes_error_result(self):
        self.orchestrator.start()
        self.future.set_exception(RuntimeError("worker crashed"))

        with self.assertLogs("utils.background", level="ERROR"):
            result = self.orchestrator.poll()

        self.assertFalse(result.complete)
        self.assertEqual(result.error, "sync failed: worker crashed")
        self.assertFalse(self.orchestrator.in_flight)

    def test_pass_runs_sync_with_client(self):
        self.orchestrator.start()

        args, kwargs = self.executor.submit.call_args
        self.assertIs(args[0], sync_canvas_data)
        self.assertIs(args[1], self.client)
        self.assertIs(kwargs["save"], self.orchestrator.save)


if __name__ == "__main__":
    unittest.main()
