from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True, slots=True)
class FilterDecision:
    accepted: bool
    reason: str
    word: Optional[str] = None


def _first_match(path: str, words: Iterable[str]) -> Optional[str]:
    lowered = path.lower()
    for word in words:
        if word and word.lower() in lowered:
            return word
    return None


def evaluate_filters(path: str, whitelist: Iterable[str], blacklist: Iterable[str]) -> FilterDecision:
    """Decide whether an arrival should be processed.

    A blacklisted word always rejects. When a whitelist is configured at least
    one of its words has to appear in the path. Matching ignores case.
    """
    blacklisted = _first_match(path, blacklist)
    if blacklisted is not None:
        return FilterDecision(False, "blacklisted", blacklisted)

    whitelist = [word for word in whitelist if word]
    if whitelist:
        whitelisted = _first_match(path, whitelist)
        if whitelisted is None:
            return FilterDecision(False, "not-whitelisted")
        return FilterDecision(True, "whitelisted", whitelisted)

    return FilterDecision(True, "unrestricted")


def should_process(path: str, whitelist: Iterable[str], blacklist: Iterable[str]) -> bool:
    return evaluate_filters(path, whitelist, blacklist).accepted


__all__ = ["FilterDecision", "evaluate_filters", "should_process"]
