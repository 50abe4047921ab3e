"""Ordered keyword-bucket rules for trend categories"""
from typing import Callable, Iterable, List, Optional, Tuple

TECH_WORDS = ("tech", "technology", "iphone", "android", "laptop", "computer", "software", "app", "ai", "gadget")
GAMING_WORDS = ("game", "gaming", "playstation", "xbox", "nintendo", "stream", "twitch")
ENTERTAINMENT_WORDS = ("movie", "film", "tv", "show", "series", "trailer", "review", "reaction")
EDUCATION_WORDS = ("tutorial", "learn", "how to", "guide", "course", "lesson", "education")


def _contains_any(words: Tuple[str, ...]) -> Callable[[str], bool]:
    return lambda text: any(word in text for word in words)


# Evaluated top to bottom; the first matching rule wins.
CATEGORY_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (_contains_any(TECH_WORDS), "tech"),
    (_contains_any(GAMING_WORDS), "gaming"),
    (_contains_any(ENTERTAINMENT_WORDS), "entertainment"),
    (_contains_any(EDUCATION_WORDS), "education"),
]

CATEGORIES = tuple(label for _, label in CATEGORY_RULES)


def categorize(keyword: str, titles: Iterable[str] = (), tags: Iterable[str] = ()) -> Optional[str]:
    """
    Classify a keyword by plain substring containment against the buckets.

    The text searched is the keyword plus every tag and title of the
    snapshots that contributed to it.
    """
    text = " ".join([keyword, " ".join(tags), " ".join(titles)]).lower()
    for matches, label in CATEGORY_RULES:
        if matches(text):
            return label
    return None
