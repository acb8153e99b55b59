"""File extension allowlist / blocklist."""

import os
from dataclasses import dataclass

from flatserve.config import Config, normalize_extensions


@dataclass(frozen=True)
class ExtensionPolicy:
    allowed: frozenset
    blocked: frozenset

    @classmethod
    def from_config(cls, config: Config) -> "ExtensionPolicy":
        return cls(
            allowed=frozenset(normalize_extensions(config.allowed_extensions)),
            blocked=frozenset(normalize_extensions(config.blocked_extensions)),
        )

    def is_servable(self, path: str) -> bool:
        """Blocklist first, then default-deny against the allowlist."""
        ext = os.path.splitext(path)[1].lower()
        if ext in self.blocked:
            return False
        return ext in self.allowed
