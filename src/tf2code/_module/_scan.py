"""Locate top-level declarations in HCL source text.

The HCL parser drops source positions, so the loader recovers them by
scanning the raw text for block headers (and for attribute lines inside
``locals`` blocks). Braces inside strings, comments and heredocs are ignored.
"""

import re
from collections import defaultdict
from typing import TypeAlias

_RESOURCE_HEADER_RE = re.compile(r'^\s*(resource|data)\s+"?([\w-]+)"?\s+"?([\w-]+)"?\s*\{')
_BLOCK_HEADER_RE = re.compile(r'^\s*(provider|variable|output|module)\s+"?([\w-]+)"?\s*\{')
_LOCALS_HEADER_RE = re.compile(r"^\s*locals\s*\{")
_ATTRIBUTE_RE = re.compile(r"^\s*([\w-]+)\s*=(?!=)")
_HEREDOC_RE = re.compile(r"<<-?\s*([A-Za-z_]\w*)\s*$")

PositionKey: TypeAlias = tuple[str, str, str]


def _brace_delta(line: str, *, in_comment: bool) -> tuple[int, bool]:
    """Count the net brace depth change of a line.

    Returns:
        The depth change and whether a ``/* */`` comment is still open at the end of the line.

    """
    delta = 0
    i = 0
    while i < len(line):
        if in_comment:
            end = line.find("*/", i)
            if end < 0:
                return delta, True
            in_comment = False
            i = end + 2
            continue
        ch = line[i]
        if ch == "#" or line.startswith("//", i):
            break
        if line.startswith("/*", i):
            in_comment = True
            i += 2
            continue
        if ch == '"':
            i += 1
            while i < len(line) and line[i] != '"':
                i += 2 if line[i] == "\\" else 1
        elif ch == "{":
            delta += 1
        elif ch == "}":
            delta -= 1
        i += 1
    return delta, in_comment


def scan_positions(text: str) -> dict[PositionKey, list[int]]:
    """Find the 1-based line of every top-level declaration in ``text``.

    Keys are ``(kind, type, name)``: ``("resource", "aws_instance", "web")``,
    ``("provider", "", "aws")``, ``("locals", "", "region")`` and so on. A key
    maps to a list of lines because providers may repeat with different aliases.

    """
    positions: defaultdict[PositionKey, list[int]] = defaultdict(list)
    depth = 0
    in_comment = False
    in_locals = False
    heredoc_end: str | None = None

    for lineno, line in enumerate(text.splitlines(), start=1):
        if heredoc_end is not None:
            if line.strip() == heredoc_end:
                heredoc_end = None
            continue

        if not in_comment:
            if depth == 0:
                if m := _RESOURCE_HEADER_RE.match(line):
                    positions[(m.group(1), m.group(2), m.group(3))].append(lineno)
                elif m := _BLOCK_HEADER_RE.match(line):
                    positions[(m.group(1), "", m.group(2))].append(lineno)
                elif _LOCALS_HEADER_RE.match(line):
                    in_locals = True
            elif depth == 1 and in_locals and (m := _ATTRIBUTE_RE.match(line)):
                positions[("locals", "", m.group(1))].append(lineno)

        delta, in_comment = _brace_delta(line, in_comment=in_comment)
        depth = max(depth + delta, 0)
        if depth == 0:
            in_locals = False

        if m := _HEREDOC_RE.search(line):
            heredoc_end = m.group(1)

    return dict(positions)
