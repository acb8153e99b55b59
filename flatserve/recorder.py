"""WSGI response recording and the per-request log hook."""

import logging
import time
from datetime import datetime, timezone, tzinfo

from werkzeug.wsgi import get_path_info

from flatserve.writer import LogEntry, LogWriter

logger = logging.getLogger(__name__)


class ResponseRecorder:
    """Mirrors the status and byte count of a WSGI response without altering it.

    The first status passed to ``start_response`` is the one recorded; later
    calls are forwarded untouched but do not change it.
    """

    def __init__(self, start_response):
        self._start_response = start_response
        self.status_code = 200
        self.bytes_written = 0
        self.wrote_header = False

    def start_response(self, status, headers, exc_info=None):
        if not self.wrote_header:
            self.status_code = int(status.split(" ", 1)[0])
            self.wrote_header = True
        write = self._start_response(status, headers, exc_info)

        def recorded_write(data):
            self.bytes_written += len(data)
            return write(data)

        return recorded_write

    def count(self, chunk):
        self.bytes_written += len(chunk)
        return chunk


class RecordedResponse:
    """Response iterable that counts bytes and runs ``on_close`` exactly once."""

    def __init__(self, app_iter, recorder: ResponseRecorder, on_close):
        self._app_iter = app_iter
        self._recorder = recorder
        self._on_close = on_close
        self._closed = False

    def __iter__(self):
        for chunk in self._app_iter:
            yield self._recorder.count(chunk)

    def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            close = getattr(self._app_iter, "close", None)
            if close is not None:
                close()
        finally:
            self._on_close()


class RequestLogMiddleware:
    """Wraps a WSGI app so every request produces exactly one LogEntry."""

    def __init__(self, app, writer: LogWriter, tz: tzinfo, time_func=None):
        self._app = app
        self._writer = writer
        self._tz = tz
        self._time_func = time_func or (lambda: datetime.now(timezone.utc))

    def __call__(self, environ, start_response):
        started = time.perf_counter()
        recorder = ResponseRecorder(start_response)
        method = environ.get("REQUEST_METHOD", "")
        path = get_path_info(environ)

        def finish():
            now = self._time_func().astimezone(self._tz)
            entry = LogEntry(
                timestamp=now,
                method=method,
                path=path,
                status=recorder.status_code,
                bytes=recorder.bytes_written,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            self._writer.append(entry, now)

        try:
            app_iter = self._app(environ, recorder.start_response)
        except BaseException:
            if not recorder.wrote_header:
                recorder.status_code = 500
            finish()
            raise
        return RecordedResponse(app_iter, recorder, finish)
