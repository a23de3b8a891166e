"""Topic pattern matching: AMQP-style bindings compiled to anchored regular expressions."""

import re
import threading
from collections import OrderedDict
from typing import Dict, Pattern, Set


SEPARATOR = "."
ANY_CHARACTERS = "*"
ANY_WORD = "#"

_ANY_CHARACTERS_RE = ".*"
_ANY_WORD_RE = "[A-Za-z0-9]*"


def regexify(pattern: str) -> str:
    """
    Translate a topic pattern to regex source. '.' is literal, '*' matches any
    run of characters (dots included), '#' matches a run of alphanumerics.
    """
    parts = []
    for ch in pattern:
        if ch == ANY_CHARACTERS:
            parts.append(_ANY_CHARACTERS_RE)
        elif ch == ANY_WORD:
            parts.append(_ANY_WORD_RE)
        else:
            parts.append(re.escape(ch))
    return "".join(parts)


class TopicMatcher:
    """
    Resolves whether a concrete topic is bound by a pattern.

    Positive results are memoized per topic (topic -> patterns known to match).
    Compiled expressions are kept per pattern and reused across topics.
    With max_topics > 0 the topic cache evicts its least recently used entry.
    """

    def __init__(self, max_topics: int = 0) -> None:
        self._max_topics = max_topics
        self._cache: "OrderedDict[str, Set[str]]" = OrderedDict()
        self._compiled: Dict[str, Pattern[str]] = {}
        self._lock = threading.Lock()

    @property
    def max_topics(self) -> int:
        return self._max_topics

    def matches(self, pattern: str, topic: str) -> bool:
        """Return True if topic is bound by pattern (whole-string match)."""
        with self._lock:
            known = self._cache.get(topic)
            if known is not None and pattern in known:
                self._cache.move_to_end(topic)
                return True
            compiled = self._compiled.get(pattern)
            if compiled is None:
                compiled = re.compile(regexify(pattern))
                self._compiled[pattern] = compiled
        if compiled.fullmatch(topic) is None:
            return False
        self._remember(pattern, topic)
        return True

    def _remember(self, pattern: str, topic: str) -> None:
        with self._lock:
            known = self._cache.get(topic)
            if known is None:
                known = set()
                self._cache[topic] = known
            known.add(pattern)
            self._cache.move_to_end(topic)
            if self._max_topics and len(self._cache) > self._max_topics:
                self._cache.popitem(last=False)

    def cached_topics(self) -> int:
        """Number of topics with at least one remembered match."""
        with self._lock:
            return len(self._cache)

    def clear(self) -> None:
        """Forget every memoized result and compiled pattern."""
        with self._lock:
            self._cache.clear()
            self._compiled.clear()
