"""Recover the comments written around a declaration."""

import re

from tf2code._errors import CommentsError
from tf2code._module import Declaration

from ._nodes import Comments

_BLOCK_COMMENT_RE = re.compile(r"^/\*(.*)\*/$")


def _comment_text(line: str) -> str | None:
    """Return the text of a comment-only line, without its marker, or None."""
    stripped = line.strip()
    if stripped.startswith("#"):
        return stripped[1:]
    if stripped.startswith("//"):
        return stripped[2:]
    if m := _BLOCK_COMMENT_RE.match(stripped):
        return m.group(1)
    return None


def _trailing_comment(line: str) -> str | None:
    """Return the comment at the end of a code line, if any."""
    in_string = False
    i = 0
    while i < len(line):
        ch = line[i]
        if in_string:
            if ch == "\\":
                i += 1
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "#":
            return line[i + 1 :].rstrip()
        elif line.startswith("//", i):
            return line[i + 2 :].rstrip()
        i += 1
    return None


def extract_comments(decl: Declaration) -> Comments:
    """Collect the comment lines directly above a declaration and the comment on its first line.

    Raises:
        CommentsError: If the declaration's position or source text is unknown.

    """
    if not decl.position.is_valid or decl.source_text is None:
        msg = f"No source position for {decl.kind} {decl.name!r}; cannot recover its comments"
        raise CommentsError(msg)

    lines = decl.source_text.splitlines()
    index = decl.position.line - 1
    if index >= len(lines):
        msg = f"Position {decl.position} of {decl.kind} {decl.name!r} is past the end of its file"
        raise CommentsError(msg)

    leading: list[str] = []
    for line in reversed(lines[:index]):
        text = _comment_text(line)
        if text is None:
            break
        leading.append(text.rstrip())
    leading.reverse()

    trailing = _trailing_comment(lines[index])
    return Comments(leading=leading, trailing=[trailing] if trailing is not None else [])
