"""Command-line entry point for the Canvas dashboard."""

import argparse
import logging
import sys
import time
from datetime import datetime, timezone
from typing import List, Optional

import config
from app import DashboardApp
from canvas_api.client import CanvasAPIError, CanvasClient
from services.canvas_service import (
    AssignmentSort,
    assignment_status_label,
    flatten_assignments,
    get_formatted_courses,
    sort_assignments,
    strip_html,
    upcoming_assignments,
)
from services.submission_service import SubmissionKind, SubmissionRequest, submit
from storage.cache_manager import load_cache
from utils.datetime_utils import format_local
from utils.editor import edit_text

TICK_SECONDS = 0.1
ANNOUNCEMENT_PREVIEW_CHARS = 80

SORT_CHOICES = {
    "due": AssignmentSort.DUE_ASC,
    "due-desc": AssignmentSort.DUE_DESC,
    "course": AssignmentSort.COURSE,
    "status": AssignmentSort.STATUS,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="canvas-tui", description="A terminal client for Canvas LMS.")
    parser.add_argument("--init", action="store_true", help="Generate a default config file and exit.")
    parser.add_argument("--offline", action="store_true", help="Show cached data only; do not sync.")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default: %(default)s).")
    parser.add_argument("--sort", choices=sorted(SORT_CHOICES), default="due",
                        help="Order of the assignment list (default: %(default)s).")
    parser.add_argument("--course", action="append", default=[], metavar="NAME",
                        help="Only list assignments for this course (repeatable).")

    parser.add_argument("--submit", nargs=2, type=int, metavar=("COURSE_ID", "ASSIGNMENT_ID"),
                        help="Submit work for an assignment instead of showing the dashboard.")
    content = parser.add_mutually_exclusive_group()
    content.add_argument("--text", help="Submit this text entry.")
    content.add_argument("--url", help="Submit this website URL.")
    content.add_argument("--file", help="Upload and submit this file.")
    content.add_argument("--editor", action="store_true", help="Write a text entry in $EDITOR.")

    args = parser.parse_args(argv)
    if args.submit and not (args.text or args.url or args.file or args.editor):
        parser.error("--submit needs one of --text, --url, --file or --editor")
    return args


def announcement_preview(announcement: dict) -> str:
    """Title plus the first line of the message, without markup."""
    title = announcement.get("title") or "Untitled"
    body = " ".join(strip_html(announcement.get("message")).split())
    if len(body) > ANNOUNCEMENT_PREVIEW_CHARS:
        body = body[:ANNOUNCEMENT_PREVIEW_CHARS - 1] + "…"
    return f"{title}: {body}" if body else title


def print_dashboard(app: DashboardApp, sort: AssignmentSort = AssignmentSort.DUE_ASC,
                    course_filter: Optional[List[str]] = None) -> None:
    now = datetime.now(timezone.utc)

    print(f"\n📚 Courses ({len(app.courses)})")
    for line in get_formatted_courses(app.courses):
        print(f"  {line}")

    upcoming = upcoming_assignments(app.assignments, now)
    print(f"\n📆 Upcoming ({len(upcoming)})")
    for course_name, assignment in upcoming:
        due = format_local(assignment["due_at"], "%a %b %d, %I:%M %p")
        marker = "▶" if assignment.get("id") == app.focal_assignment_id else " "
        print(f" {marker} {due} – {assignment.get('name')} [{course_name}] "
              f"{assignment_status_label(assignment, now)}")

    pairs = sort_assignments(flatten_assignments(app.assignments, set(course_filter or [])), sort, now)
    print(f"\n📝 Assignments ({len(pairs)}, sorted by {sort.label})")
    for course_name, assignment in pairs:
        due = format_local(assignment["due_at"], "%b %d %I:%M %p") if assignment.get("due_at") else "No due date"
        print(f"  {due} – {assignment.get('name') or 'Unnamed'} [{course_name}] "
              f"{assignment_status_label(assignment, now)}")

    print(f"\n📣 Announcements ({len(app.announcements)})")
    for announcement in app.announcements[:5]:
        print(f"  {announcement_preview(announcement)}")

    print(f"\n🗓  Calendar ({len(app.calendar_items)})")
    for item in app.calendar_items[app.today_index:app.today_index + 10]:
        when = format_local(item.start_at, "%b %d %I:%M %p") if item.start_at else "No date"
        status = f" ({item.status})" if item.status else ""
        print(f"  {when} – {item.title}{status}")


def run_dashboard(app: DashboardApp, offline: bool, sort: AssignmentSort = AssignmentSort.DUE_ASC,
                  course_filter: Optional[List[str]] = None) -> int:
    cached = load_cache()
    if cached is not None:
        app.load_from_cache(cached)
        print(app.status_message)
        print_dashboard(app, sort, course_filter)
    if offline:
        return 0

    app.start_sync()
    print(app.status_message)
    while app.loading:
        app.tick()
        time.sleep(TICK_SECONDS)

    print(app.status_message)
    print_dashboard(app, sort, course_filter)
    return 0


def run_submission(client: CanvasClient, args: argparse.Namespace) -> int:
    course_id, assignment_id = args.submit
    if args.url:
        kind, content = SubmissionKind.URL, args.url
    elif args.file:
        kind, content = SubmissionKind.FILE, args.file
    else:
        kind, content = SubmissionKind.TEXT, args.text if args.text else edit_text()
        if not content.strip():
            print("Nothing to submit.")
            return 1

    request = SubmissionRequest(course_id, assignment_id, kind, content)
    try:
        submission = submit(client, request)
    except CanvasAPIError as e:
        print(f"❌ Submission failed: {e}")
        return 1

    print(f"✅ Submitted {kind.label} (attempt {submission.get('attempt', '?')}).")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.init:
        path = config.generate_default_config(config.CONFIG_PATH)
        print(f"Generated config file at: {path}")
        print("Edit it with your Canvas URL and API token, then run canvas-tui.")
        return 0

    try:
        client = CanvasClient(config.CANVAS_BASE_URL, config.CANVAS_TOKEN)
    except ValueError:
        print("Failed to load configuration. Run `canvas-tui --init` to generate a config file,\n"
              "or set CANVAS_URL and CANVAS_API_TOKEN environment variables.", file=sys.stderr)
        return 2

    if args.submit:
        return run_submission(client, args)

    app = DashboardApp(client)
    try:
        return run_dashboard(app, args.offline, SORT_CHOICES[args.sort], args.course)
    finally:
        app.shutdown()


if __name__ == "__main__":
    sys.exit(main())
