# Patchtool - managed path ownership for server patching
# Copyright (C) 2025 The patchtool authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Utility functions for patchtool.

This module contains general-purpose utilities used throughout patchtool,
including debug output, path manipulation and version resource loading.
"""

from __future__ import annotations

import os
import re
import sys
from importlib import resources

from patchtool.types import PatchStateError

PROGRAM_NAME = "patchtool"
VERSION_RESOURCE = "version.txt"

_VERSION_PATTERN = re.compile(r"^\d+(\.\d+)*([.-][A-Za-z0-9_]+)*$")


def _initial_debug_level() -> int:
    try:
        return int(os.environ.get("PATCHTOOL_VERBOSE", "0"))
    except ValueError:
        return 0


# Debug level and test mode are module-level state
_debug_level = _initial_debug_level()
_test_mode = False


def set_debug_level(level: int) -> None:
    """Set verbosity level for debug()."""
    global _debug_level
    _debug_level = level


def get_debug_level() -> int:
    """Get current debug level."""
    return _debug_level


def set_test_mode(on_or_off: bool) -> None:
    """Set test mode on or off."""
    global _test_mode
    _test_mode = bool(on_or_off)


def get_test_mode() -> bool:
    """Get current test mode."""
    return _test_mode


def debug(level: int, *args) -> None:
    """
    Log to STDERR based on debug_level setting.

    Verbosity rules:
        0: errors only
        >= 1: ownership changes: OWN/DISOWN/DROP
        >= 2: batch start and end, skipped records
        >= 3: recursion trace through parent directories
        >= 4: filesystem queries

    Supports two calling conventions:
        debug(level, msg)
        debug(level, indent_level, msg)
    """
    if len(args) >= 2 and isinstance(args[0], int):
        indent_level = args[0]
        msg = args[1]
    elif len(args) >= 1:
        indent_level = 0
        msg = args[0]
    else:
        return

    if _debug_level >= level:
        indent = "    " * indent_level
        if _test_mode:
            print(f"# {indent}{msg}")
        else:
            print(f"{indent}{msg}", file=sys.stderr)


def parent(path: str) -> str:
    """
    Find the parent of the given relative path.

    Returns the empty string for a top-level entry.
    """
    elts = [elt for elt in path.split("/") if elt]
    if elts:
        elts.pop()
    return "/".join(elts)


def depth(path: str) -> int:
    """Number of directories above the given relative path."""
    return path.count("/")


def parse_version_text(text: str) -> str:
    """
    Return the version declared in a versioned text resource.

    The version is the first line that is neither blank nor a '#' comment.
    Raises PatchStateError if there is no such line or it is not a version.
    """
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if not _VERSION_PATTERN.match(line):
            raise PatchStateError(f"Cannot parse {PROGRAM_NAME} version: {line}")
        return line

    raise PatchStateError(f"Cannot obtain {PROGRAM_NAME} version")


def load_version(package: str = "patchtool", resource: str = VERSION_RESOURCE) -> str:
    """Read the version from a resource shipped inside the given package."""
    try:
        text = resources.files(package).joinpath(resource).read_text(encoding="utf-8")
    except (OSError, ModuleNotFoundError) as e:
        raise PatchStateError(
            f"Cannot read {PROGRAM_NAME} version from {package}/{resource} ({e})"
        ) from e
    return parse_version_text(text)
