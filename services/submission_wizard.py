"""State machine behind the interactive "submit assignment" flow."""

import logging
from concurrent.futures import Executor
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from canvas_api.client import CanvasAPIError
from services.submission_service import SubmissionKind, SubmissionRequest, supported_kinds
from utils.background import TaskHandle, make_executor, run_in_background

logger = logging.getLogger(__name__)

SubmitFn = Callable[[SubmissionRequest], Dict[str, Any]]


class WizardState(Enum):
    HIDDEN = "hidden"
    TYPE_PICKER = "type_picker"
    EDITING = "editing"  # external editor owns the terminal
    URL_INPUT = "url_input"
    FILE_INPUT = "file_input"
    TEXT_PREVIEW = "text_preview"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    DONE = "done"


_INPUT_STATES = {WizardState.URL_INPUT, WizardState.FILE_INPUT}
_GATE_STATES = {WizardState.TEXT_PREVIEW, WizardState.CONFIRMING}


def _success_message(submission: Mapping[str, Any]) -> str:
    attempt = submission.get("attempt") if isinstance(submission, Mapping) else None
    if attempt:
        return f"Submitted successfully (attempt {attempt})."
    return "Submitted successfully."


class SubmissionWizard:
    """
    Drives one submission from kind selection to the final result.

    The target (course id, assignment id) is fixed when the wizard opens.
    Renderers read ``state``, ``kinds``, ``cursor``, ``buffer``, ``text``
    and the DONE fields; input handlers call the transition methods, which
    are no-ops in states where they do not apply.
    """

    def __init__(self, submit_fn: SubmitFn, executor: Optional[Executor] = None) -> None:
        self.submit_fn = submit_fn
        self._executor = executor or make_executor(max_workers=1)
        self._handle: Optional[TaskHandle] = None
        self._reset()
        self.status_message: Optional[str] = None

    def _reset(self) -> None:
        self.state = WizardState.HIDDEN
        self.course_id: Optional[int] = None
        self.assignment_id: Optional[int] = None
        self.assignment_name: Optional[str] = None
        self.kinds: List[SubmissionKind] = []
        self.cursor = 0
        self.selected_kind: Optional[SubmissionKind] = None
        self.buffer = ""
        self.text = ""
        self.success: Optional[bool] = None
        self.message: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state is not WizardState.HIDDEN

    @property
    def pending(self) -> bool:
        return self.state is WizardState.SUBMITTING

    def open(self, assignment: Optional[Mapping[str, Any]], course_id: Optional[int] = None) -> bool:
        """Open the picker for an assignment. Returns False if nothing can be submitted."""
        if self.is_open:
            return False

        if assignment is None:
            self.status_message = "No assignment selected."
            return False

        course_id = course_id if course_id is not None else assignment.get("course_id")
        assignment_id = assignment.get("id")
        if course_id is None or assignment_id is None:
            self.status_message = "Could not determine the course for this assignment."
            return False

        kinds = supported_kinds(assignment.get("submission_types") or [])
        if not kinds:
            self.status_message = "This assignment does not accept text, URL, or file submissions."
            return False

        self._reset()
        self.course_id = course_id
        self.assignment_id = assignment_id
        self.assignment_name = assignment.get("name")
        self.kinds = kinds
        self.state = WizardState.TYPE_PICKER
        self.status_message = None
        return True

    def move_cursor(self, delta: int) -> None:
        if self.state is not WizardState.TYPE_PICKER or not self.kinds:
            return
        self.cursor = max(0, min(len(self.kinds) - 1, self.cursor + delta))

    def select(self) -> None:
        """Choose the kind under the cursor."""
        if self.state is not WizardState.TYPE_PICKER or not self.kinds:
            return
        self.selected_kind = self.kinds[self.cursor]
        self.buffer = ""
        self.text = ""
        if self.selected_kind is SubmissionKind.TEXT:
            self.state = WizardState.EDITING
        elif self.selected_kind is SubmissionKind.URL:
            self.state = WizardState.URL_INPUT
        else:
            self.state = WizardState.FILE_INPUT

    def editor_returned(self, content: Optional[str]) -> None:
        """Result of the external editor round-trip; blank content cancels."""
        if self.state is not WizardState.EDITING:
            return
        if not content or not content.strip():
            self.state = WizardState.TYPE_PICKER
            return
        self.text = content
        self.state = WizardState.TEXT_PREVIEW

    def type_text(self, chars: str) -> None:
        if self.state in _INPUT_STATES:
            self.buffer += chars

    def backspace(self) -> None:
        if self.state in _INPUT_STATES:
            self.buffer = self.buffer[:-1]

    def confirm_input(self) -> None:
        if self.state in _INPUT_STATES and self.buffer.strip():
            self.state = WizardState.CONFIRMING

    def build_request(self) -> SubmissionRequest:
        if self.selected_kind is SubmissionKind.TEXT:
            content = self.text
        else:
            content = self.buffer.strip()
        return SubmissionRequest(
            course_id=self.course_id,
            assignment_id=self.assignment_id,
            kind=self.selected_kind,
            content=content,
        )

    def answer(self, yes: bool) -> None:
        """Yes/no gate before the pipeline starts."""
        if self.state not in _GATE_STATES:
            return
        if not yes:
            self.state = WizardState.TYPE_PICKER
            return

        request = self.build_request()
        logger.info("Submitting %s for assignment %s in course %s",
                    request.kind.value, request.assignment_id, request.course_id)
        self._handle = run_in_background(self._executor, self.submit_fn, request)
        self.state = WizardState.SUBMITTING

    def escape(self) -> bool:
        """Back out one step. Returns True only when it closed a successful DONE."""
        if self.state in _INPUT_STATES or self.state in _GATE_STATES:
            self.state = WizardState.TYPE_PICKER
        elif self.state is WizardState.SUBMITTING:
            # The request keeps running; only its result is dropped
            if self._handle is not None:
                self._handle.discard()
                self._handle = None
            self.state = WizardState.TYPE_PICKER
        elif self.state is WizardState.TYPE_PICKER:
            self._reset()
        elif self.state is WizardState.DONE:
            return self.dismiss()
        return False

    def poll(self) -> bool:
        """Collect a finished submission. Returns True when the wizard reached DONE."""
        if self.state is not WizardState.SUBMITTING or self._handle is None:
            return False
        if not self._handle.done:
            return False

        handle, self._handle = self._handle, None
        try:
            submission = handle.poll()
        except CanvasAPIError as e:
            self.success, self.message = False, str(e)
        except Exception as e:
            logger.exception("Submission pipeline crashed")
            self.success, self.message = False, str(e) or type(e).__name__
        else:
            self.success, self.message = True, _success_message(submission or {})

        self.state = WizardState.DONE
        return True

    def dismiss(self) -> bool:
        """Close the DONE screen. Returns True if the submission succeeded."""
        if self.state is not WizardState.DONE:
            return False
        succeeded = bool(self.success)
        self._reset()
        return succeeded

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
