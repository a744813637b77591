# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Fixed-width text helpers shared by provenance rendering and the console report."""


def rule(fill: str, width: int) -> str:
    """A separator line made of `width` copies of `fill`."""
    return fill * max(width, 0)


def line_string(left: str, fill: str, right: str, width: int) -> str:
    """
    Lay out `left` and `right` on one line of `width` columns.

    The result is `left + " " + fill... + " " + right`. When the two sides
    don't fit, no fill is inserted and the line simply runs long.
    """
    gap = width - len(left) - len(right) - 2
    return f"{left} {fill * max(gap, 0)} {right}"
