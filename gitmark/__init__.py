# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
gitmark: mark every commit in a repository's history.

Each commit is pushed through a small marking expression (build it, test it,
look at how big it was) and gets an integer mark plus a readable trace of
how that mark came about.
"""

__version__ = "0.1.0"
