"""Doc comment parsing for the method page.

Service methods describe themselves with tagged doc comments, e.g.::

    /**
     * Adds two numbers.
     * @param int $a first operand
     * @param int $b second operand
     * @return int
     */

or the same text as a Python docstring. There is no grammar guarantee for
this text, so the parser is line-oriented and stops instead of failing:

- The first blank line ends parsing; everything after it is discarded.
- A tag whose header does not match `@name type [$var] [text]` ends parsing,
  and the metadata gathered up to that point is returned.

Every iteration consumes at least one line, so parsing is linear in the
length of the comment.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Leading indentation, an optional "/**", "*/" or "*" marker, then at most one space.
_DECORATION_RE = re.compile(r"^[ \t]*(?:/\*\*|\*/|\*)?[ ]?")
_TAG_NAME_RE = re.compile(r"^@(\w+)(?:\s|$)")
_TAG_HEADER_RE = re.compile(
    r"^@(?P<tag>\w+)\s+(?P<type>[\w|\\]+)(?:\s+(?P<var>\$\S+))?(?:\s+(?P<text>.*))?",
    re.DOTALL,
)


@dataclass(frozen=True)
class DocParam:
    """A `@param` tag: the documented name (without `$`) and its type token."""

    name: str
    type: str


@dataclass
class DocBlockInfo:
    """Structured metadata extracted from one doc comment."""

    paragraphs: list[str] = field(default_factory=list)
    params: list[DocParam] = field(default_factory=list)
    return_type: str | None = None

    @property
    def description(self) -> str:
        return "\n\n".join(self.paragraphs)

    def param_type(self, name: str) -> str | None:
        """Type documented for parameter `name`, or None if no tag names it."""
        found = None
        for param in self.params:
            if param.name == name:
                found = param.type
        return found


def strip_decoration(raw_comment: str) -> list[str]:
    """Strip comment markers and indentation, dropping leading blank lines."""
    lines = [_DECORATION_RE.sub("", line) for line in raw_comment.splitlines()]
    while lines and not lines[0].strip():
        lines.pop(0)
    return lines


def parse(raw_comment: str | None) -> DocBlockInfo | None:
    """Parse a raw doc comment.

    Returns None when the comment is missing, empty or whitespace only.
    """
    if raw_comment is None or not raw_comment.strip():
        return None

    info = DocBlockInfo()
    lines = strip_decoration(raw_comment)
    index = 0
    while index < len(lines):
        line = lines[index]
        if not line.strip():
            break

        if not line.startswith("@"):
            info.paragraphs.append(line.strip().strip("*").strip())
            index += 1
            continue

        # The tag body runs until the next tag, a blank line or the end.
        end = index + 1
        while end < len(lines) and lines[end].strip() and not lines[end].startswith("@"):
            end += 1
        body = "\n".join(lines[index:end])
        index = end

        if not _apply_tag(info, body):
            logger.debug("Malformed doc tag, stopping: %r", body)
            break

    return info


def _apply_tag(info: DocBlockInfo, body: str) -> bool:
    """Record one tag into `info`. Returns False if the header is malformed."""
    if not _TAG_NAME_RE.match(body):
        return False
    match = _TAG_HEADER_RE.match(body)
    if match is None:
        return False

    tag = match.group("tag")
    if tag == "param":
        name = (match.group("var") or "").strip("$")
        info.params.append(DocParam(name=name, type=match.group("type")))
    elif tag.lower() == "return":
        info.return_type = match.group("type")
    return True
