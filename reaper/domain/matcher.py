"""
Matching of disconnected sessions against a broker's allow-list.
"""

from __future__ import annotations

from collections.abc import Mapping

from reaper.domain.types import AllowListEntry, DisconnectedSession


def matches(allow_list: Mapping[str, str], session: DisconnectedSession) -> set[AllowListEntry]:
    """
    Return every allow-list entry matched by the session's applications.

    Targets are trimmed before the comparison; short names are compared
    as-is and case-sensitively. All applications and entries are checked so
    the result is complete. A non-empty result means the session qualifies
    for a single logoff.

    Args:
        allow_list: Alias -> target application name for one broker
        session: Disconnected session to check

    Returns:
        Set of matched entries (empty if none)
    """
    entries = [AllowListEntry(alias, target.strip()) for alias, target in allow_list.items()]
    matched: set[AllowListEntry] = set()

    for app in session.applications:
        short_name = app.short_name
        for entry in entries:
            if entry.target and short_name == entry.target:
                matched.add(entry)

    return matched
