"""Advertised-name matching for the tracker peripheral."""

from __future__ import annotations

# Some stacks truncate the advertised local name ("Timeular Tra").
_MIN_TRUNCATED_NAME = 8


def _normalize(name: str) -> str:
    return " ".join(name.split()).lower()


def match_score(advertised: str | None, wanted: str) -> int:
    if not advertised or not wanted:
        return 0
    adv = _normalize(advertised)
    want = _normalize(wanted)
    if adv == want:
        return 3
    if adv.startswith(want):
        return 2
    if len(adv) >= _MIN_TRUNCATED_NAME and want.startswith(adv):
        return 1
    return 0


def name_matches(advertised: str | None, wanted: str) -> bool:
    """Return True when an advertised name identifies the configured device."""
    return match_score(advertised, wanted) > 0
