# Patchtool - managed path ownership for server patching
# Copyright (C) 2025 The patchtool authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
The patch tool facade.

PatchTool sequences the work of one install, update or uninstall: it reports
additions to the server's ManagedPaths, copies or removes files in the
server installation, and then reports deletions. Concrete tools supply the
server and the patch repository.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import Iterable, Protocol, Union

from patchtool.paths import ManagedPaths
from patchtool.types import Action, PatchId, PatchResult, Record
from patchtool.util import debug, load_version

# Fails at import time if the packaged version resource is missing or broken.
VERSION = load_version()


class Server(Protocol):
    """The server installation being patched."""

    @property
    def server_home(self) -> Union[str, os.PathLike]:
        """Root directory of the installation."""
        ...

    @property
    def managed_paths(self) -> ManagedPaths:
        """Ownership registry for paths below server_home."""
        ...


class Repository(Protocol):
    """Storage for patch archives and their metadata."""

    def query_available(self, prefix: str | None = None) -> list[PatchId]:
        """Return the patch ids available in the repository."""
        ...


class PatchTool(ABC):
    """
    The patch tool.

    Implementations report additions and updates to the managed paths just
    before the files are copied, while the installation still shows which
    files and directories predate the patch. Deletions are reported after
    the files have been removed.
    """

    VERSION = VERSION

    @abstractmethod
    def get_server(self) -> Server:
        """Get the server instance."""

    @abstractmethod
    def get_repository(self) -> Repository:
        """Get the patch repository."""

    @abstractmethod
    def install(self, patch_id: PatchId, force: bool = False) -> PatchResult:
        """Install the given patch id to the server."""

    @abstractmethod
    def update(self, name: str, force: bool = False) -> PatchResult:
        """Update the server to the latest patch with the given name."""

    @abstractmethod
    def uninstall(self, patch_id: PatchId) -> PatchResult:
        """Uninstall the given patch id from the server."""

    def sync_managed_paths(
        self, records: Iterable[Record], *actions: Union[Action, Iterable[Action]]
    ) -> ManagedPaths:
        """Apply the records with the given actions to the server's managed paths."""
        server = self.get_server()
        debug(2, 0, f"Syncing managed paths under {os.fspath(server.server_home)}")
        return server.managed_paths.update_paths(server.server_home, records, *actions)
