"""
Unit tests for the submission pipeline.
Tests text/URL payloads and the three-step file upload.
"""

import os
import tempfile
import unittest
from unittest.mock import Mock, patch

import requests
from requests.structures import CaseInsensitiveDict

from canvas_api.client import CanvasAPIError, CanvasClient, FileAccessError, NetworkError, UploadError
from services.submission_service import (
    SubmissionKind,
    SubmissionRequest,
    UploadSlot,
    guess_content_type,
    read_upload_file,
    submit,
    supported_kinds,
    upload_to_slot,
    wrap_text_body,
)


def make_response(payload=None, status=200, headers=None, text=""):
    response = Mock()
    response.status_code = status
    response.headers = CaseInsensitiveDict(headers or {})
    response.json.return_value = payload
    response.text = text
    return response


class TestSubmissionHelpers(unittest.TestCase):

    def test_supported_kinds_keeps_picker_order(self):
        kinds = supported_kinds(["online_upload", "on_paper", "online_text_entry"])

        self.assertEqual(kinds, [SubmissionKind.TEXT, SubmissionKind.FILE])
        self.assertEqual(supported_kinds(["none"]), [])
        self.assertEqual(supported_kinds(None), [])

    def test_wrap_text_body_escapes_markup(self):
        self.assertEqual(wrap_text_body("a < b && c > d\n  x"),
                         "<pre>a &lt; b &amp;&amp; c &gt; d\n  x</pre>")

    def test_guess_content_type(self):
        self.assertEqual(guess_content_type("essay.PDF"), "application/pdf")
        self.assertEqual(guess_content_type("notes.txt"), "text/plain")
        self.assertEqual(guess_content_type("archive.xyz"), "application/octet-stream")
        self.assertEqual(guess_content_type("Makefile"), "application/octet-stream")

    def test_upload_slot_requires_url(self):
        with self.assertRaises(CanvasAPIError):
            UploadSlot.from_response({"upload_params": {}})

        slot = UploadSlot.from_response({"upload_url": "https://up", "upload_params": {"k": "v"}})
        self.assertEqual(slot.file_param, "file")
        self.assertEqual(slot.upload_params, {"k": "v"})

    def test_upload_slot_rejects_non_mapping_params(self):
        for params in (["key"], "key=abc", 7):
            with self.subTest(params=params):
                with self.assertRaises(CanvasAPIError):
                    UploadSlot.from_response({"upload_url": "https://up", "upload_params": params})

    def test_upload_slot_missing_params_default_empty(self):
        slot = UploadSlot.from_response({"upload_url": "https://up", "upload_params": None})

        self.assertEqual(slot.upload_params, {})

    def test_read_upload_file_missing(self):
        with self.assertRaises(FileAccessError):
            read_upload_file("/nonexistent/dir/essay.pdf")


class TestSubmitTextAndUrl(unittest.TestCase):

    def setUp(self):
        self.client = Mock(spec=CanvasClient)
        self.client.post.return_value = {"id": 1, "attempt": 3}

    def test_text_submission(self):
        result = submit(self.client, SubmissionRequest(10, 20, SubmissionKind.TEXT, "hello"))

        path, payload = self.client.post.call_args.args
        self.assertEqual(path, "courses/10/assignments/20/submissions")
        self.assertEqual(payload, {"submission": {"submission_type": "online_text_entry",
                                                  "body": "<pre>hello</pre>"}})
        self.assertEqual(result["attempt"], 3)

    def test_url_submission(self):
        submit(self.client, SubmissionRequest(10, 20, SubmissionKind.URL, "https://example.org"))

        payload = self.client.post.call_args.args[1]
        self.assertEqual(payload["submission"], {"submission_type": "online_url",
                                                 "url": "https://example.org"})

    def test_errors_propagate(self):
        self.client.post.side_effect = CanvasAPIError("boom")

        with self.assertRaises(CanvasAPIError):
            submit(self.client, SubmissionRequest(10, 20, SubmissionKind.URL, "https://x"))


class TestFileUpload(unittest.TestCase):
    """Test suite for the three-step file upload."""

    def setUp(self):
        self.client = Mock(spec=CanvasClient)
        self.client.timeout = 30.0
        self.slot = UploadSlot(upload_url="https://storage.example.com/upload",
                               upload_params={"key": "abc", "policy": "p"},
                               file_param="attachment")

    @patch('services.submission_service.requests.post')
    def test_upload_sends_params_and_file_without_token(self, mock_post):
        mock_post.return_value = make_response(status=302, headers={
            "Location": "https://canvas.example.com/api/v1/files/77/create_success?uuid=u"})
        self.client.get_url.return_value = {"id": 77}

        file_id = upload_to_slot(self.client, self.slot, "essay.pdf", b"%PDF", "application/pdf")

        self.assertEqual(file_id, 77)
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://storage.example.com/upload")
        self.assertEqual(kwargs["data"], {"key": "abc", "policy": "p"})
        self.assertEqual(kwargs["files"], {"attachment": ("essay.pdf", b"%PDF", "application/pdf")})
        self.assertFalse(kwargs["allow_redirects"])
        self.assertNotIn("headers", kwargs)
        self.client.get_url.assert_called_once_with(
            "https://canvas.example.com/api/v1/files/77/create_success?uuid=u")

    @patch('services.submission_service.requests.post')
    def test_upload_direct_success(self, mock_post):
        mock_post.return_value = make_response({"id": 88}, status=201)

        self.assertEqual(upload_to_slot(self.client, self.slot, "a.txt", b"x", "text/plain"), 88)
        self.client.get_url.assert_not_called()

    @patch('services.submission_service.requests.post')
    def test_upload_failure_status(self, mock_post):
        mock_post.return_value = make_response(status=400, text="EntityTooLarge")

        with self.assertRaises(UploadError) as ctx:
            upload_to_slot(self.client, self.slot, "a.txt", b"x", "text/plain")

        self.assertEqual(ctx.exception.status, 400)
        self.assertIn("Upload failed", str(ctx.exception))

    @patch('services.submission_service.requests.post')
    def test_redirect_without_location(self, mock_post):
        mock_post.return_value = make_response(status=303)

        with self.assertRaises(UploadError):
            upload_to_slot(self.client, self.slot, "a.txt", b"x", "text/plain")

    @patch('services.submission_service.requests.post')
    def test_confirmation_without_id(self, mock_post):
        mock_post.return_value = make_response(status=302, headers={"Location": "https://c/x"})
        self.client.get_url.return_value = {"display_name": "a.txt"}

        with self.assertRaises(CanvasAPIError):
            upload_to_slot(self.client, self.slot, "a.txt", b"x", "text/plain")

    @patch('services.submission_service.requests.post')
    def test_transport_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout("timed out")

        with self.assertRaises(NetworkError):
            upload_to_slot(self.client, self.slot, "a.txt", b"x", "text/plain")

    @patch('services.submission_service.requests.post')
    def test_submit_file_end_to_end(self, mock_post):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "report.pdf")
            with open(path, "wb") as f:
                f.write(b"0123456789")

            self.client.post.side_effect = [
                {"upload_url": "https://storage.example.com/upload",
                 "upload_params": {"key": "abc"}},
                {"id": 5, "attempt": 1, "submission_type": "online_upload"},
            ]
            mock_post.return_value = make_response(status=302, headers={"Location": "https://c/confirm"})
            self.client.get_url.return_value = {"id": 4242}

            result = submit(self.client, SubmissionRequest(1, 2, SubmissionKind.FILE, f"  {path} "))

        slot_call, submit_call = self.client.post.call_args_list
        self.assertEqual(slot_call.args[1], {"name": "report.pdf", "size": 10,
                                             "content_type": "application/pdf"})
        self.assertEqual(mock_post.call_args.kwargs["files"]["file"][0], "report.pdf")
        self.assertEqual(submit_call.args[1], {"submission": {"submission_type": "online_upload",
                                                              "file_ids": [4242]}})
        self.assertEqual(result["attempt"], 1)

    def test_submit_file_unreadable_makes_no_requests(self):
        with self.assertRaises(FileAccessError):
            submit(self.client, SubmissionRequest(1, 2, SubmissionKind.FILE, "/nonexistent/x.pdf"))

        self.client.post.assert_not_called()


if __name__ == "__main__":
    unittest.main()
