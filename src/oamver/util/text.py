from __future__ import annotations

import io
import typing as t

SubstRange = t.Tuple[int, int, str]


def substitute_ranges(text: str, ranges: t.Iterable[SubstRange], is_sorted: bool = False) -> str:
    """Replaces parts of *text* using the specified *ranges* and returns the new text. Ranges must not overlap. A
    range with equal start and end index is an insertion; multiple insertions at the same index are applied in the
    order they are given. *is_sorted* can be set to `True` if the input *ranges* are already sorted from lowest to
    highest starting index.
    """

    if not is_sorted:
        ranges = sorted(ranges, key=lambda x: x[0])

    out = io.StringIO()
    max_end_index = 0
    for index, (istart, iend, subst) in enumerate(ranges):
        if iend < istart:
            raise ValueError(f"invalid range at index {index}: (istart: {istart!r}, iend: {iend!r})")
        if istart < max_end_index:
            raise ValueError(f"invalid range at index {index}: overlap with previous range")

        out.write(text[max_end_index:istart])
        out.write(str(subst))
        max_end_index = iend

    out.write(text[max_end_index:])
    return out.getvalue()


def leading_whitespace(line: str) -> str:
    """Returns the indentation of *line*."""

    return line[: len(line) - len(line.lstrip(" \t"))]


def line_ending(line: str, default: str = "\n") -> str:
    """Returns the line terminator of *line*, or *default* if the line is not terminated."""

    if line.endswith("\r\n"):
        return "\r\n"
    if line.endswith(("\n", "\r")):
        return line[-1]
    return default
