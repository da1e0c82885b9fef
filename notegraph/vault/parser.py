"""Markdown parsing utilities for wiki-links and tags."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

# Match [[target]], [[target|display]], [[target#section]], [[target#section|display]]
WIKILINK_PATTERN = re.compile(r"!?\[\[([^\]|#]+)(?:#([^\]|]*))?(?:\|([^\]]+))?\]\]")

# #tag not preceded by a word character, & (html entity) or / (url fragment)
TAG_PATTERN = re.compile(r"(?<![\w&/#])#([A-Za-z0-9_/-]+)")


@dataclass(frozen=True)
class LinkRef:
    """One wiki-link occurrence in note content."""

    target: str
    section: str | None
    display: str | None
    start: int
    end: int


def strip_extension(name: str) -> str:
    """Drop a trailing .md (any case) from a note name or link target."""
    if name.lower().endswith(".md"):
        return name[:-3]
    return name


def iter_link_refs(content: str) -> Iterator[LinkRef]:
    """Yield every wiki-link in content, in order, with its match span."""
    for match in WIKILINK_PATTERN.finditer(content):
        target = strip_extension(match.group(1).strip())
        if not target:
            continue
        section = match.group(2)
        display = match.group(3)
        yield LinkRef(
            target=target,
            section=section.strip() if section else None,
            display=display.strip() if display else None,
            start=match.start(),
            end=match.end(),
        )


def extract_links(content: str) -> list[str]:
    """Extract all wiki-link targets from content.

    Targets keep their case; the list is deduplicated preserving order.
    """
    seen = set()
    result = []
    for ref in iter_link_refs(content):
        if ref.target not in seen:
            seen.add(ref.target)
            result.append(ref.target)
    return result


def extract_tags(content: str) -> list[str]:
    """Extract inline #tags, ignoring anything inside wiki-links.

    Purely numeric tokens (issue numbers, "#1") are not tags.
    """
    stripped = WIKILINK_PATTERN.sub(" ", content)
    seen = set()
    result = []
    for match in TAG_PATTERN.finditer(stripped):
        tag = match.group(1).strip("/")
        if not tag or tag.isdigit() or tag in seen:
            continue
        seen.add(tag)
        result.append(tag)
    return result


def context_snippet(content: str, start: int, end: int, radius: int = 50) -> str:
    """Text surrounding content[start:end], with ellipses where truncated."""
    lo = max(0, start - radius)
    hi = min(len(content), end + radius)
    snippet = content[lo:hi]
    if lo > 0:
        snippet = "..." + snippet
    if hi < len(content):
        snippet = snippet + "..."
    return snippet.strip()


def word_count(content: str) -> int:
    """Count words, reading wiki-links as their display text and dropping tags."""

    def _display(match: re.Match) -> str:
        return match.group(3) or match.group(1)

    text = WIKILINK_PATTERN.sub(_display, content)
    text = TAG_PATTERN.sub(" ", text)
    text = re.sub(r"[#*_`>\[\]()~-]", " ", text)
    return len(text.split())
