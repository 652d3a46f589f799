"""Lexical fallback matching.

Bag-of-words containment used when the embedding provider is unavailable.
Scores are not comparable to cosine similarity.
"""

import re
from collections.abc import Sequence

from app.core.schemas_analysis import Document, ScoredDocument

_NON_WORD = re.compile(r"\W+")

# Tokens must be longer than this to count
MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> list[str]:
    """Split on non-word characters, lower-case, drop tokens of length <= 3."""
    if not text:
        return []
    return [t for t in _NON_WORD.split(text.lower()) if len(t) > MIN_TOKEN_LENGTH]


def lexical_score(query_text: str, document_text: str) -> float:
    """
    Fraction of distinct query tokens present in the document.

    Args:
        query_text: Text to match (e.g. release notes)
        document_text: Text to match against (e.g. article title + body)

    Returns:
        matched_count / max(query_token_count, 1), clamped to [0, 1]
    """
    query_tokens = list(dict.fromkeys(tokenize(query_text)))
    if not query_tokens:
        return 0.0

    doc_tokens = set(tokenize(document_text))
    matched = sum(1 for t in query_tokens if t in doc_tokens)
    score = matched / max(len(query_tokens), 1)
    return max(0.0, min(1.0, score))


def score_documents(
    query_text: str,
    documents: Sequence[Document],
) -> list[ScoredDocument]:
    """Score each document's title + body against the query, in input order."""
    return [
        ScoredDocument.from_document(doc, lexical_score(query_text, doc.search_text))
        for doc in documents
    ]
