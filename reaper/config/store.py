"""
Allow-list file parsing (apps.ini).

The file maps each broker (a ``[section]``) to the published applications
whose disconnected sessions should be logged off::

    ; Delivery controllers
    [ddc01.example.local]
    calc = Calculator.exe
    notes = Notepad.exe

Comment lines are kept as ``CommentN`` keys so the file can be written
back unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

from reaper.config.settings import (
    APPS_CONFIG_EXTENSION,
    COMMENT_KEY_PATTERN,
    COMMENT_KEY_PREFIX,
    COMMENT_PATTERN,
    KEY_VALUE_PATTERN,
    NO_SECTION,
    SECTION_PATTERN,
)

logger = logging.getLogger("session-reaper")


class ConfigError(Exception):
    """Raised when the allow-list file cannot be loaded."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


class ConfigNotFoundError(ConfigError):
    """The allow-list file does not exist or cannot be read."""

    def __init__(self, path: Path | str, reason: str = "Config file not found") -> None:
        super().__init__(path, reason)


class ConfigFormatError(ConfigError):
    """The allow-list file has the wrong extension or is not text."""

    def __init__(self, path: Path | str, reason: str = "Invalid config format") -> None:
        super().__init__(path, reason)


def is_comment_key(key: str) -> bool:
    return bool(COMMENT_KEY_PATTERN.match(key))


class Config(Mapping):
    """
    Read-only, ordered ``section -> {key: value}`` mapping.

    Sections and keys keep file order. Values are stored raw; callers trim
    them at use time.
    """

    def __init__(self, sections: dict[str, dict[str, str]]) -> None:
        self._sections = {name: MappingProxyType(dict(keys)) for name, keys in sections.items()}

    def __getitem__(self, section: str) -> Mapping[str, str]:
        return self._sections[section]

    def __iter__(self) -> Iterator[str]:
        return iter(self._sections)

    def __len__(self) -> int:
        return len(self._sections)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Config):
            return self.to_dict() == other.to_dict()
        return NotImplemented

    def __repr__(self) -> str:
        return f"Config({self.to_dict()!r})"

    def brokers(self) -> list[str]:
        """Broker identifiers in file order (the no-section bucket excluded)."""
        return [name for name in self._sections if name != NO_SECTION]

    def allow_list(self, broker: str) -> dict[str, str]:
        """
        Alias -> target application view for one broker.

        Synthetic ``CommentN`` keys are dropped. An unknown broker yields an
        empty allow-list.
        """
        section = self._sections.get(broker, {})
        return {key: value for key, value in section.items() if not is_comment_key(key)}

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {name: dict(keys) for name, keys in self._sections.items()}

    def dump(self) -> str:
        """Serialize back to the apps.ini grammar."""
        lines: list[str] = []
        for name, keys in self._sections.items():
            if name != NO_SECTION:
                lines.append(f"[{name}]")
            for key, value in keys.items():
                if is_comment_key(key):
                    lines.append(value)
                else:
                    lines.append(f"{key} ={value}")
        return "\n".join(lines) + "\n" if lines else ""


def parse(text: str) -> Config:
    """
    Parse apps.ini content.

    Each line is tried as a section header, then a ``;`` comment, then a
    ``key = value`` pair; anything else is ignored.
    """
    sections: dict[str, dict[str, str]] = {}
    comment_counts: dict[str, int] = {}
    current: str | None = None

    for line in text.splitlines():
        match = SECTION_PATTERN.match(line)
        if match:
            current = match.group(1)
            sections.setdefault(current, {})
            comment_counts.setdefault(current, 0)
            continue

        match = COMMENT_PATTERN.match(line)
        if match:
            if current is None:
                current = NO_SECTION
                sections.setdefault(current, {})
            comment_counts[current] = comment_counts.get(current, 0) + 1
            sections[current][f"{COMMENT_KEY_PREFIX}{comment_counts[current]}"] = match.group(1)
            continue

        match = KEY_VALUE_PATTERN.match(line)
        if match:
            if current is None:
                current = NO_SECTION
                sections.setdefault(current, {})
            key, value = match.groups()
            sections[current][key] = value

    return Config(sections)


def load(path: Path | str) -> Config:
    """
    Load and parse the allow-list file.

    Raises:
        ConfigNotFoundError: If the file is missing or unreadable
        ConfigFormatError: If the extension is wrong or the file is not text
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigNotFoundError(path)
    if path.suffix.lower() != APPS_CONFIG_EXTENSION:
        raise ConfigFormatError(path, f"Expected a {APPS_CONFIG_EXTENSION} file")

    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise ConfigFormatError(path, f"Config file is not valid text ({e.reason})") from e
    except OSError as e:
        raise ConfigNotFoundError(path, f"Config file unreadable ({e.strerror})") from e

    config = parse(text)
    logger.debug(f"Loaded allow-list from {path}: {len(config.brokers())} brokers")
    return config
