"""Tag vocabulary and suggestions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

DEFAULT_TAGS: tuple[str, ...] = (
    # Technology & development
    "web-development",
    "mobile-app",
    "backend",
    "frontend",
    "fullstack",
    "api",
    "database",
    "ai-ml",
    "blockchain",
    "devops",
    # Languages & frameworks
    "react",
    "typescript",
    "javascript",
    "python",
    "nodejs",
    "nextjs",
    "vue",
    "angular",
    "flutter",
    "swift",
    # Project types
    "saas",
    "ecommerce",
    "portfolio",
    "blog",
    "cms",
    "dashboard",
    "landing-page",
    "tool",
    "game",
    "automation",
    # Business & marketing
    "startup",
    "side-project",
    "freelance",
    "client-work",
    "mvp",
    "prototype",
    "research",
    "marketing",
    "analytics",
    "seo",
    # Learning & education
    "tutorial",
    "course",
    "learning",
    "documentation",
    "open-source",
    "experiment",
    "hackathon",
    "challenge",
    # Status & priority
    "urgent",
    "low-priority",
    "high-priority",
    "archived",
    "maintenance",
    "refactor",
    "bug-fix",
    "feature",
    "enhancement",
    "security",
)


class TagSuggestionIndex:
    """Case-insensitive substring suggestions over an ordered vocabulary."""

    def __init__(
        self,
        vocabulary: Sequence[str] = DEFAULT_TAGS,
        *,
        limit: int = 8,
        default_count: int = 10,
    ) -> None:
        self._vocabulary = tuple(vocabulary)
        self._lowered = tuple(tag.lower() for tag in self._vocabulary)
        self.limit = limit
        self.default_count = default_count

    @property
    def vocabulary(self) -> tuple[str, ...]:
        return self._vocabulary

    def suggest(self, query: str, *, exclude: Iterable[str] = ()) -> list[str]:
        """Suggest tags for what the user has typed so far.

        Blank input returns the first ``default_count`` entries. Otherwise up
        to ``limit`` entries containing the query are returned in vocabulary
        order. Tags in ``exclude`` (already chosen) are skipped.
        """
        skip = {tag.lower() for tag in exclude}
        if not query.strip():
            pool = [t for t in self._vocabulary if t.lower() not in skip]
            return pool[: self.default_count]

        needle = query.lower()
        matches = [
            tag
            for tag, lowered in zip(self._vocabulary, self._lowered, strict=True)
            if needle in lowered and lowered not in skip
        ]
        return matches[: self.limit]


_default_index = TagSuggestionIndex()


def get_tag_suggestions(query: str) -> list[str]:
    """Suggestions from the default vocabulary."""
    return _default_index.suggest(query)


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip and lowercase tags, dropping empties and repeats, keeping order."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result
