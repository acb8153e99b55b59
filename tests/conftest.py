import json
import os

import pytest

from flatserve.app import create_app
from flatserve.config import Config

REPORT_BODY = b"<html><body><h1>Quarterly report</h1></body></html>\n"

ENV_KEYS = (
    "CONFIG_PATH", "WWW_ROOT", "LOG_DIR", "SERVER_HOST", "SERVER_PORT",
    "RETENTION_HOURS", "LOG_TIMEZONE", "SWEEP_INTERVAL_SECONDS",
    "ALLOWED_EXTENSIONS", "BLOCKED_EXTENSIONS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def www_root(tmp_path):
    root = tmp_path / "www"
    root.mkdir()
    (root / "report.html").write_bytes(REPORT_BODY)
    (root / "style.CSS").write_text("body { color: red; }\n")
    (root / "access.log").write_text("127.0.0.1 GET /secret\n")
    (root / "tool.exe").write_bytes(b"MZ\x90\x00")
    (root / "README").write_text("no extension\n")
    (root / "assets.css").mkdir()
    nested = root / "sub" / "dir"
    nested.mkdir(parents=True)
    (nested / "file.html").write_text("<p>nested</p>\n")
    (tmp_path / "outside.html").write_text("<p>outside the root</p>\n")
    return root


@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def config(www_root, log_dir):
    return Config(www_root=str(www_root), log_dir=str(log_dir))


@pytest.fixture
def app(config):
    """Create a Flask test app."""
    application = create_app(config)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def log_lines(log_dir):
    """Return a callable reading every JSON record from every bucket file."""
    def _read():
        records = []
        if not os.path.isdir(log_dir):
            return records
        for name in sorted(os.listdir(log_dir)):
            with open(os.path.join(log_dir, name), encoding="utf-8") as f:
                records.extend(json.loads(line) for line in f if line.strip())
        return records
    return _read
