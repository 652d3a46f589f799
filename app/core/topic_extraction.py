"""Topic extraction from release notes.

Derives a bounded, deduplicated list of candidate topics from free text.
Topics feed gap detection: each one is checked against existing article
titles and, optionally, against the corpus via embeddings.

Stop words are data, not logic. The default set can be extended without code
changes through TOPIC_EXTRA_STOP_WORDS (comma separated) or a word-per-line
file at TOPIC_STOP_WORDS_FILE.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Characters removed before splitting
DEFAULT_STRIP_CHARS = ".,!?;:"

# Tokens must be longer than this to become topics
MIN_TOPIC_LENGTH = 3

DEFAULT_MAX_TOPICS = 15

# Common English words plus domain-generic release-notes vocabulary
STOP_WORDS = frozenset({
    # Common English
    "the", "and", "with", "from", "have", "that", "this", "will",
    "about", "your", "also", "been", "more", "than", "when", "what",
    "where", "which", "there", "their", "they", "them", "these", "those",
    "into", "onto", "over", "under", "were", "would", "could", "should",
    "some", "such", "only", "other", "each", "very", "just", "then",
    "while", "after", "before", "during", "through", "between", "does",
    "being", "here", "both", "many", "much", "most", "must", "make",
    "made", "using", "used", "allows", "allow",
    # Documentation / release vocabulary
    "help", "article", "articles", "information", "notes", "note",
    "feature", "features", "improvement", "improvements", "improved",
    "update", "updates", "updated", "version", "versions", "release",
    "released", "releases", "added", "fixed", "fixes", "support",
    "supports", "user", "users",
})


def _normalize_word(word: str) -> str:
    return word.strip().lower()


def load_stop_words_file(path: str | Path) -> frozenset[str]:
    """Read a stop-word file: one word per line, blank lines and '#' comments ignored."""
    words = set()
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        line = line.split("#", 1)[0]
        if line.strip():
            words.add(_normalize_word(line))
    return frozenset(words)


@lru_cache
def configured_stop_words() -> frozenset[str]:
    """Default stop words merged with the ones configured in settings."""
    settings = get_settings()
    words = set(STOP_WORDS)

    extra = [_normalize_word(w) for w in settings.TOPIC_EXTRA_STOP_WORDS.split(",")]
    words.update(w for w in extra if w)

    if settings.TOPIC_STOP_WORDS_FILE:
        try:
            words.update(load_stop_words_file(settings.TOPIC_STOP_WORDS_FILE))
        except OSError as e:
            logger.warning(f"Could not read stop-word file {settings.TOPIC_STOP_WORDS_FILE}: {e}")

    return frozenset(words)


@dataclass(frozen=True)
class Tokenizer:
    """Pure string -> token sequence function configured by data."""

    strip_chars: str = DEFAULT_STRIP_CHARS
    min_length: int = MIN_TOPIC_LENGTH
    stop_words: frozenset[str] = field(default_factory=configured_stop_words)

    def normalize(self, text: str) -> str:
        """Lower-case and remove the strip characters."""
        if not text:
            return ""
        table = str.maketrans("", "", self.strip_chars)
        return text.lower().translate(table)

    def tokenize(self, text: str) -> list[str]:
        """Whitespace tokens longer than min_length that are not stop words."""
        return [
            token
            for token in self.normalize(text).split()
            if len(token) > self.min_length and token not in self.stop_words
        ]


def extract_topics(
    text: str,
    max_topics: int = DEFAULT_MAX_TOPICS,
    tokenizer: Tokenizer | None = None,
) -> list[str]:
    """
    Extract candidate topics from free text.

    Args:
        text: Source text (typically release notes)
        max_topics: Maximum number of topics to return
        tokenizer: Tokenizer to use (defaults to the configured one)

    Returns:
        Deduplicated topics in first-seen order, at most max_topics long
    """
    if not text or not text.strip():
        return []

    tokenizer = tokenizer or Tokenizer()

    # dict preserves first-seen order
    unique = dict.fromkeys(tokenizer.tokenize(text))
    return list(unique)[:max(max_topics, 0)]


def count_mentions(text: str, topic: str) -> int:
    """
    Count case-insensitive, word-bounded occurrences of topic in text.

    Args:
        text: Text to search
        topic: Topic string (matched literally)

    Returns:
        Number of matches
    """
    if not text or not topic:
        return 0
    pattern = re.compile(rf"\b{re.escape(topic)}\b", re.IGNORECASE)
    return len(pattern.findall(text))
