# Patchtool - managed path ownership for server patching
# Copyright (C) 2025 The patchtool authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
patchtool - track which patch owns which server file

This package keeps the bookkeeping that lets a patch tool install, update
and uninstall incremental file sets on top of a server installation without
one patch's uninstall deleting files another patch, or the server itself,
still needs.

Basic usage::

    from patchtool import ManagedPaths, PatchId, Record, Action

    paths = ManagedPaths([])
    patch = PatchId("foo", "1.0.0")
    records = [Record("lib/foo.jar", Action.ADD, patch)]

    # Record additions while the server still shows what predates the patch
    paths.update_paths("/opt/server", records, Action.ADD, Action.UPDATE)
    # ... then copy lib/foo.jar into /opt/server ...

    for mpath in paths.get_managed_paths():
        print(mpath)

Removal is reported after the files are gone from disk::

    paths.update_paths("/opt/server", records, Action.DELETE)
"""

from patchtool.types import (
    SERVER_ID,
    Action,
    ManagedPath,
    PatchArgumentError,
    PatchError,
    PatchId,
    PatchIOError,
    PatchResult,
    PatchStateError,
    Record,
)
from patchtool.paths import DiskRoot, InstallRoot, ManagedPaths
from patchtool.tool import VERSION as __version__
from patchtool.tool import PatchTool, Repository, Server

__all__ = [
    "SERVER_ID",
    "Action",
    "ManagedPath",
    "ManagedPaths",
    "PatchId",
    "Record",
    "PatchResult",
    "InstallRoot",
    "DiskRoot",
    "PatchTool",
    "Server",
    "Repository",
    "PatchError",
    "PatchArgumentError",
    "PatchIOError",
    "PatchStateError",
    "__version__",
]
