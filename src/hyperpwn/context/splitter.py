"""Block splitter — cut a context block into per-view sections."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hyperpwn.replay.registry import SessionRegistry

# Any line with a horizontal rule character is a section divider
DIVIDER_RE = re.compile(r"^([^\r\n]*─[^\r\n]*)", re.MULTILINE)

BORDER_WIDTH = 2


@dataclass(frozen=True)
class SectionPair:
    """A divider line and the raw text up to the next divider."""

    header: str
    content: str

    @property
    def raw(self) -> str:
        return self.header + self.content


@dataclass
class Attribution:
    """Result of matching a block's sections against registered views."""

    segments: list[tuple[str, str]]  # (session_id, trimmed content)
    passthrough: str = ""


def split_block(body: str) -> list[SectionPair]:
    """Split a block body into (header, content) pairs.

    Text before the first divider is the remainder of the legend line
    and is dropped.
    """
    parts = DIVIDER_RE.split(body)[1:]
    return [SectionPair(parts[i], parts[i + 1]) for i in range(0, len(parts), 2)]


def trim_border(content: str) -> str:
    """Drop the two padding characters at both ends of a section."""
    if len(content) <= 2 * BORDER_WIDTH:
        return ""
    return content[BORDER_WIDTH:-BORDER_WIDTH]


def attribute(pairs: list[SectionPair], registry: SessionRegistry) -> Attribution:
    """Assign each section to the first session whose view name is in its header.

    Sections no session claims are returned verbatim as pass-through.
    """
    result = Attribution(segments=[])
    views = registry.items()
    for pair in pairs:
        owner = next((sid for sid, view in views if view in pair.header), None)
        if owner is None:
            result.passthrough += pair.raw
        else:
            result.segments.append((owner, trim_border(pair.content)))
    return result
