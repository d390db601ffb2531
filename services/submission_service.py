"""
Assignment submission pipeline.

Three submission kinds are supported: text entry, website URL and file
upload. File uploads follow Canvas' three-step protocol:

1. ask Canvas for an upload slot (URL + form fields the storage expects),
2. POST the bytes as multipart form data straight to the storage endpoint,
   without the Canvas token and without following redirects,
3. follow the storage redirect to Canvas' confirmation endpoint, this time
   with the token, to learn the uploaded file's id.

The submission then references that file id. Any failing step aborts the
whole attempt; callers restart from step 1.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping

import requests

from canvas_api.client import (
    CanvasAPIError,
    CanvasClient,
    FileAccessError,
    NetworkError,
    UploadError,
)
from canvas_api.endpoints import request_upload_slot, submit_assignment
from constants import DEFAULT_CONTENT_TYPE, DEFAULT_FILE_PARAM, MIME_TYPES, SUBMISSION_KIND_LABELS

logger = logging.getLogger(__name__)


class SubmissionKind(Enum):
    """Submission types this client can produce, by Canvas submission_type."""
    TEXT = "online_text_entry"
    URL = "online_url"
    FILE = "online_upload"

    @property
    def label(self) -> str:
        return SUBMISSION_KIND_LABELS[self.value]


@dataclass(frozen=True)
class SubmissionRequest:
    """What to submit, and where. ``content`` is the text, URL or file path."""
    course_id: int
    assignment_id: int
    kind: SubmissionKind
    content: str


@dataclass(frozen=True)
class UploadSlot:
    """Pre-authorized destination for one file's bytes."""
    upload_url: str
    upload_params: Dict[str, Any] = field(default_factory=dict)
    file_param: str = DEFAULT_FILE_PARAM

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> "UploadSlot":
        upload_url = data.get("upload_url")
        if not upload_url:
            raise CanvasAPIError("Upload slot response did not include an upload_url")
        upload_params = data.get("upload_params") or {}
        if not isinstance(upload_params, dict):
            raise CanvasAPIError("Upload slot upload_params must be an object")
        return cls(
            upload_url=upload_url,
            upload_params=dict(upload_params),
            file_param=data.get("file_param") or DEFAULT_FILE_PARAM,
        )


def supported_kinds(submission_types: Iterable[str]) -> List[SubmissionKind]:
    """Kinds both the assignment and this client accept, in picker order."""
    declared = set(submission_types or [])
    return [kind for kind in SubmissionKind if kind.value in declared]


def wrap_text_body(text: str) -> str:
    """Escape text and wrap it in <pre> so whitespace survives as HTML."""
    escaped = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return f"<pre>{escaped}</pre>"


def guess_content_type(filename: str) -> str:
    """MIME type from the file extension; octet-stream when unknown."""
    _, ext = os.path.splitext(filename)
    return MIME_TYPES.get(ext.lstrip(".").lower(), DEFAULT_CONTENT_TYPE)


def submit_text(client: CanvasClient, course_id: int, assignment_id: int, text: str) -> Dict[str, Any]:
    return submit_assignment(client, course_id, assignment_id, {
        "submission_type": SubmissionKind.TEXT.value,
        "body": wrap_text_body(text),
    })


def submit_url(client: CanvasClient, course_id: int, assignment_id: int, url: str) -> Dict[str, Any]:
    return submit_assignment(client, course_id, assignment_id, {
        "submission_type": SubmissionKind.URL.value,
        "url": url,
    })


def request_slot(client: CanvasClient, course_id: int, assignment_id: int,
                 filename: str, size: int, content_type: str) -> UploadSlot:
    """Step 1: reserve an upload slot for the file."""
    data = request_upload_slot(client, course_id, assignment_id, filename, size, content_type)
    return UploadSlot.from_response(data)


def _file_id(data: Any) -> int:
    if not isinstance(data, dict) or data.get("id") is None:
        raise CanvasAPIError("Upload confirmation did not include a file id")
    return data["id"]


def upload_to_slot(client: CanvasClient, slot: UploadSlot, filename: str,
                   data: bytes, content_type: str) -> int:
    """
    Steps 2 and 3: send the bytes to the storage endpoint and confirm.

    The storage endpoint never sees the Canvas token; only the confirmation
    GET it redirects to is authenticated. Returns the uploaded file's id.
    """
    try:
        response = requests.post(
            slot.upload_url,
            data=slot.upload_params,
            files={slot.file_param: (filename, data, content_type)},
            allow_redirects=False,
            timeout=client.timeout,
        )
    except requests.exceptions.RequestException as e:
        raise NetworkError(e) from e

    status = response.status_code
    if 300 <= status < 400:
        location = response.headers.get("Location")
        if not location:
            raise UploadError(status, response.text or "redirect without Location header")
        logger.debug("Upload redirected to confirmation endpoint %s", location)
        return _file_id(client.get_url(location))

    if 200 <= status < 300:
        try:
            return _file_id(response.json())
        except ValueError as e:
            raise CanvasAPIError("Upload response was not valid JSON") from e

    raise UploadError(status, response.text or "")


def read_upload_file(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FileAccessError(f"Could not read {path}: {e.strerror or e}") from e


def submit_file(client: CanvasClient, course_id: int, assignment_id: int, path: str) -> Dict[str, Any]:
    """Upload a local file and submit it."""
    path = os.path.expanduser(path.strip())
    data = read_upload_file(path)
    filename = os.path.basename(path)
    content_type = guess_content_type(filename)

    slot = request_slot(client, course_id, assignment_id, filename, len(data), content_type)
    file_id = upload_to_slot(client, slot, filename, data, content_type)
    logger.info("Uploaded %s as file %s", filename, file_id)

    return submit_assignment(client, course_id, assignment_id, {
        "submission_type": SubmissionKind.FILE.value,
        "file_ids": [file_id],
    })


_SUBMITTERS: Dict[SubmissionKind, Callable[[CanvasClient, int, int, str], Dict[str, Any]]] = {
    SubmissionKind.TEXT: submit_text,
    SubmissionKind.URL: submit_url,
    SubmissionKind.FILE: submit_file,
}


def submit(client: CanvasClient, request: SubmissionRequest) -> Dict[str, Any]:
    """Run the pipeline for one request; errors propagate to the caller."""
    submitter = _SUBMITTERS[request.kind]
    return submitter(client, request.course_id, request.assignment_id, request.content)
