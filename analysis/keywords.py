"""Keyword extraction from snapshot titles and tags"""
from typing import Iterable, Optional, Set

# Articles, auxiliary verbs, pronouns and conjunctions.
STOP_WORDS = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "her",
    "was", "one", "our", "out", "day", "get", "has", "him", "his", "how",
    "its", "may", "new", "now", "old", "see", "two", "way", "who", "boy",
    "did", "let", "put", "say", "she", "too", "use",
    "this", "that", "these", "those", "with", "from", "into", "have", "were",
    "been", "being", "will", "would", "could", "should", "your", "they",
    "them", "their", "what", "when", "where", "which", "while", "there",
    "here", "does", "just", "than", "then", "also", "about",
})

MIN_TOKEN_LENGTH = 4


def title_keywords(title: Optional[str]) -> Set[str]:
    """Lowercased whitespace tokens longer than 3 characters, minus stop words"""
    tokens = (title or "").lower().split()
    return {
        token for token in tokens
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    }


def tag_keywords(tags: Optional[Iterable[str]]) -> Set[str]:
    """Each tag, lowercased, is a keyword candidate on its own"""
    keywords = set()
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        tag = tag.strip().lower()
        if tag:
            keywords.add(tag)
    return keywords


def extract_keywords(title: Optional[str], tags: Optional[Iterable[str]]) -> Set[str]:
    """Union of title and tag keywords for one snapshot"""
    return title_keywords(title) | tag_keywords(tags)
