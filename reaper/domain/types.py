"""
Typed data structures for the reaper domain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from reaper.config.settings import APPLICATION_PATH_DELIMITERS


@dataclass(frozen=True)
class AllowListEntry:
    """One ``alias = target`` line of a broker section."""

    alias: str
    target: str


@dataclass(frozen=True)
class ApplicationPath:
    """An in-use application identifier as reported by the broker."""

    path: str

    def __post_init__(self) -> None:
        if not isinstance(self.path, str):
            raise TypeError(f"Application path must be a string, got {type(self.path).__name__}")

    @property
    def short_name(self) -> str:
        """Last path segment; a path without delimiters is its own short name."""
        return APPLICATION_PATH_DELIMITERS.split(self.path)[-1]


@dataclass(frozen=True)
class DisconnectedSession:
    """A disconnected session on one broker, valid for a single cycle."""

    session_handle: str
    user_full_name: str = ""
    applications: tuple[ApplicationPath, ...] = field(default_factory=tuple)

    @property
    def display_user(self) -> str:
        return self.user_full_name or "unknown"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> DisconnectedSession:
        """
        Build a session from a broker API record.

        Raises:
            ValueError: If the record has no session handle
        """
        handle = data.get("Uid", data.get("SessionUid"))
        if handle is None or str(handle).strip() == "":
            raise ValueError("Session record has no Uid")

        apps = data.get("ApplicationsInUse") or []
        if isinstance(apps, str):
            apps = [apps]

        return cls(
            session_handle=str(handle),
            user_full_name=str(data.get("UserFullName") or data.get("UserName") or ""),
            applications=tuple(ApplicationPath(str(app)) for app in apps if app is not None),
        )
