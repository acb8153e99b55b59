"""Request path sanitization for a flat served directory."""

import enum
import os

_SEPARATORS = ("/", "\\")
_PARENT = ".."


class Rejection(enum.Enum):
    DIRECTORY_ACCESS = "directory access not allowed"
    INVALID_CHARACTER = "invalid character in path"
    SUBDIRECTORY = "subdirectories not allowed"
    TRAVERSAL = "directory traversal detected"
    TRAVERSAL_AFTER_NORMALIZE = "directory traversal detected after normalization"
    ESCAPES_ROOT = "path escapes served root"


class PathRejected(Exception):
    """Raised when a candidate path may not be mapped onto the served root."""

    def __init__(self, reason: Rejection):
        super().__init__(reason.value)
        self.reason = reason


def sanitize_path(candidate: str, root: str) -> str:
    """Map an untrusted URL path onto a file directly inside ``root``.

    Only single-segment names are accepted. Each check short-circuits with
    PathRejected; the final prefix test against the canonical root always runs.
    The returned path may equal ``root`` itself, callers reject directories.
    """
    name = candidate[1:] if candidate.startswith("/") else candidate

    if name in ("", "."):
        raise PathRejected(Rejection.DIRECTORY_ACCESS)

    if "\x00" in name:
        raise PathRejected(Rejection.INVALID_CHARACTER)

    if any(sep in name for sep in _SEPARATORS):
        raise PathRejected(Rejection.SUBDIRECTORY)

    if _PARENT in name:
        raise PathRejected(Rejection.TRAVERSAL)

    clean = os.path.normpath(name)
    if _PARENT in clean:
        raise PathRejected(Rejection.TRAVERSAL_AFTER_NORMALIZE)

    full_path = os.path.join(root, clean)

    try:
        canonical_root = os.path.realpath(root)
        canonical_path = os.path.realpath(full_path)
    except ValueError:
        raise PathRejected(Rejection.INVALID_CHARACTER) from None

    if not is_within(canonical_path, canonical_root):
        raise PathRejected(Rejection.ESCAPES_ROOT)

    return full_path


def is_within(path: str, root: str) -> bool:
    """True if ``path`` equals ``root`` or has ``root`` + separator as a literal prefix."""
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)
