import logging
import os
import stat

from flask import Flask, abort, request, send_file
from werkzeug.wsgi import get_path_info

from flatserve.config import load_config, resolve_timezone
from flatserve.extensions import ExtensionPolicy
from flatserve.paths import PathRejected, sanitize_path
from flatserve.recorder import RequestLogMiddleware
from flatserve.writer import LogWriter

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "HEAD"]

_ERROR_BODIES = {
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}


def create_app(config=None, time_func=None):
    """Flask application factory.

    Builds a fresh app with its own URL map holding only the file route; the
    request log middleware wraps the WSGI callable.
    """
    if config is None:
        config = load_config()

    tz = resolve_timezone(config.log_timezone)
    www_root = os.path.abspath(config.www_root)
    policy = ExtensionPolicy.from_config(config)
    writer = LogWriter(config.log_dir, tz)

    app = Flask(__name__, static_folder=None)
    app.url_map.merge_slashes = False
    app.config["components"] = {
        "config": config,
        "www_root": www_root,
        "policy": policy,
        "writer": writer,
        "timezone": tz,
    }

    if not os.path.isdir(www_root):
        logger.warning("WWW root %s is not a directory", www_root)

    def serve(candidate=""):
        # Validate the raw PATH_INFO; routing strips leading slashes from the candidate.
        raw_path = get_path_info(request.environ)
        try:
            path = sanitize_path(raw_path, www_root)
        except PathRejected as exc:
            logger.debug("Rejected %r: %s", raw_path, exc.reason.value)
            abort(403)

        try:
            info = os.stat(path)
        except FileNotFoundError:
            abort(404)
        except OSError as exc:
            logger.error("Failed to stat %s: %s", path, exc)
            abort(500)

        if stat.S_ISDIR(info.st_mode):
            abort(403)

        if not policy.is_servable(path):
            abort(403)

        return send_file(path, conditional=True)

    for rule in ("/", "/<path:candidate>"):
        app.add_url_rule(
            rule, "serve", serve, methods=ALLOWED_METHODS,
            provide_automatic_options=False,
        )

    for code in _ERROR_BODIES:
        app.register_error_handler(code, _error_response)

    app.wsgi_app = RequestLogMiddleware(app.wsgi_app, writer, tz, time_func=time_func)
    return app


def _error_response(error):
    code = getattr(error, "code", None) or 500
    headers = {
        "Content-Type": "text/plain; charset=utf-8",
        "X-Content-Type-Options": "nosniff",
    }
    if code == 405:
        headers["Allow"] = ", ".join(ALLOWED_METHODS)
    return _ERROR_BODIES.get(code, _ERROR_BODIES[500]) + "\n", code, headers
