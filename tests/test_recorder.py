"""Tests for the response recorder and request log middleware."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from flatserve.recorder import RecordedResponse, RequestLogMiddleware, ResponseRecorder

CHICAGO = ZoneInfo("America/Chicago")
FIXED_NOW = datetime(2025, 3, 10, 19, 37, 5, tzinfo=timezone.utc)


class FakeWriter:
    def __init__(self):
        self.entries = []

    def append(self, entry, bucket_time=None):
        self.entries.append((entry, bucket_time))
        return True


class Downstream:
    """Stand-in for the server side start_response."""

    def __init__(self):
        self.calls = []
        self.written = []

    def __call__(self, status, headers, exc_info=None):
        self.calls.append((status, list(headers), exc_info))
        return self.written.append


def _environ(method="GET", path="/report.html"):
    return {"REQUEST_METHOD": method, "PATH_INFO": path, "SCRIPT_NAME": ""}


class TestResponseRecorder:
    def test_defaults(self):
        rec = ResponseRecorder(Downstream())
        assert rec.status_code == 200
        assert rec.bytes_written == 0
        assert rec.wrote_header is False

    def test_first_status_wins(self):
        downstream = Downstream()
        rec = ResponseRecorder(downstream)
        rec.start_response("404 NOT FOUND", [("Content-Type", "text/plain")])
        rec.start_response("500 INTERNAL SERVER ERROR", [], (None, None, None))
        assert rec.status_code == 404

    def test_calls_forwarded_unchanged(self):
        downstream = Downstream()
        rec = ResponseRecorder(downstream)
        headers = [("Content-Type", "text/html"), ("Content-Length", "3")]
        rec.start_response("200 OK", headers)
        assert downstream.calls == [("200 OK", headers, None)]

    def test_write_callable_counts_and_forwards(self):
        downstream = Downstream()
        rec = ResponseRecorder(downstream)
        write = rec.start_response("200 OK", [])
        write(b"abc")
        write(b"de")
        assert downstream.written == [b"abc", b"de"]
        assert rec.bytes_written == 5


class TestRecordedResponse:
    def test_iterates_unchanged_and_counts(self):
        rec = ResponseRecorder(Downstream())
        body = RecordedResponse([b"hello ", b"world"], rec, lambda: None)
        assert b"".join(body) == b"hello world"
        assert rec.bytes_written == 11

    def test_close_runs_hook_once_and_closes_inner(self):
        closed = []
        hooks = []

        class Inner(list):
            def close(self):
                closed.append(True)

        rec = ResponseRecorder(Downstream())
        body = RecordedResponse(Inner([b"x"]), rec, lambda: hooks.append(True))
        body.close()
        body.close()
        assert closed == [True]
        assert hooks == [True]

    def test_hook_runs_even_if_inner_close_fails(self):
        hooks = []

        class Inner(list):
            def close(self):
                raise RuntimeError("boom")

        body = RecordedResponse(Inner(), ResponseRecorder(Downstream()), lambda: hooks.append(1))
        with pytest.raises(RuntimeError):
            body.close()
        assert hooks == [1]


class TestRequestLogMiddleware:
    def _middleware(self, app, writer):
        return RequestLogMiddleware(app, writer, CHICAGO, time_func=lambda: FIXED_NOW)

    def test_logs_once_on_close(self):
        def app(environ, start_response):
            start_response("200 OK", [("Content-Type", "text/plain")])
            return [b"abc", b"defg"]

        writer = FakeWriter()
        mw = self._middleware(app, writer)
        body = mw(_environ(), Downstream())
        assert b"".join(body) == b"abcdefg"
        assert writer.entries == []
        body.close()
        body.close()

        assert len(writer.entries) == 1
        entry, bucket_time = writer.entries[0]
        assert entry.method == "GET"
        assert entry.path == "/report.html"
        assert entry.status == 200
        assert entry.bytes == 7
        assert entry.duration_ms >= 0
        assert entry.timestamp.isoformat() == "2025-03-10T14:37:05-05:00"
        assert bucket_time == entry.timestamp

    def test_status_is_first_one_set(self):
        def app(environ, start_response):
            start_response("403 FORBIDDEN", [])
            start_response("200 OK", [], (None, None, None))
            return [b"Forbidden\n"]

        writer = FakeWriter()
        body = self._middleware(app, writer)(_environ(), Downstream())
        list(body)
        body.close()
        assert writer.entries[0][0].status == 403

    def test_app_exception_still_logged(self):
        def app(environ, start_response):
            raise RuntimeError("handler blew up")

        writer = FakeWriter()
        mw = self._middleware(app, writer)
        with pytest.raises(RuntimeError):
            mw(_environ("HEAD", "/x.html"), Downstream())
        assert len(writer.entries) == 1
        entry = writer.entries[0][0]
        assert entry.status == 500
        assert entry.method == "HEAD"
        assert entry.bytes == 0
