# Patchtool - managed path ownership for server patching
# Copyright (C) 2025 The patchtool authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Managed server paths - which patch owns which file.

This module provides the ManagedPaths registry, which records for every
path under a server installation the patches responsible for it, and the
InstallRoot protocol it uses to look at the installation on disk.

Ownership of directories is inferred: adding a file to a directory that
did not exist makes the patch an owner of that directory as well, and
removing the last file of a directory that has vanished from disk removes
the patch's claim on it.
"""

from __future__ import annotations

import os
import stat
from typing import Iterable, Iterator, Optional, Protocol, Union, runtime_checkable

from patchtool.types import (
    SERVER_ID,
    Action,
    ManagedPath,
    PatchArgumentError,
    PatchId,
    PatchIOError,
    Record,
    normalize_path,
    path_sort_key,
)
from patchtool.util import debug, depth, parent


# =============================================================================
# Installation root
# =============================================================================


@runtime_checkable
class InstallRoot(Protocol):
    """Read-only view of an installation directory."""

    def exists(self, path: str) -> bool:
        """Return True if the relative path exists."""
        ...

    def is_file(self, path: str) -> bool:
        """Return True if the relative path is a regular file."""
        ...


class DiskRoot:
    """
    InstallRoot backed by a real directory.

    A path that does not exist, or that lies below something that is not a
    directory, is reported as absent. Every other stat failure is raised as
    PatchIOError.
    """

    def __init__(self, root_path: Union[str, os.PathLike]):
        self.root_path = os.fspath(root_path)

    def _stat(self, path: str) -> Optional[os.stat_result]:
        full_path = os.path.join(self.root_path, path)
        try:
            return os.stat(full_path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            raise PatchIOError(
                f"Cannot stat {full_path} ({e.strerror})", errno=e.errno or 1
            ) from e

    def exists(self, path: str) -> bool:
        result = self._stat(path) is not None
        debug(4, 4, f"| exists({path}): {result}")
        return result

    def is_file(self, path: str) -> bool:
        st = self._stat(path)
        result = st is not None and stat.S_ISREG(st.st_mode)
        debug(4, 4, f"| is_file({path}): {result}")
        return result

    def __repr__(self) -> str:
        return f"DiskRoot({self.root_path!r})"


def _as_install_root(root: Union[InstallRoot, str, os.PathLike]) -> InstallRoot:
    if isinstance(root, (str, os.PathLike)):
        return DiskRoot(root)
    if isinstance(root, InstallRoot):
        return root
    raise PatchArgumentError(f"Not an installation root: {root!r}")


def _action_filter(actions: tuple) -> frozenset[Action]:
    """Flatten update_paths() actions into a set of Action members."""
    if len(actions) == 1 and not isinstance(actions[0], (Action, str)):
        try:
            actions = tuple(actions[0])
        except TypeError:
            pass
    for act in actions:
        if not isinstance(act, Action):
            raise PatchArgumentError(f"Not an action: {act!r}")
    return frozenset(actions)


def remove_owner(owners: Iterable[PatchId], owner: PatchId) -> list[PatchId]:
    """Return owners without the first entry that has the same name as owner."""
    result = list(owners)
    for i, aux in enumerate(result):
        if aux.same_name(owner):
            del result[i]
            break
    return result


# =============================================================================
# Registry
# =============================================================================


class ManagedPaths:
    """
    The set of managed server paths.

    Maps each relative path to the ManagedPath that lists its owners. The
    registry is mutated in place by update_paths(); callers must serialize
    updates on a given instance.
    """

    def __init__(self, managed_paths: Iterable[ManagedPath]):
        if managed_paths is None:
            raise PatchArgumentError("managed_paths must not be None")

        paths: dict[str, ManagedPath] = {}
        for mpath in managed_paths:
            if not isinstance(mpath, ManagedPath):
                raise PatchArgumentError(f"Not a managed path: {mpath!r}")
            if mpath.path in paths:
                raise PatchArgumentError(f"Duplicate managed path: {mpath.path}")
            paths[mpath.path] = mpath
        self._paths = paths

    def get_managed_path(self, path: str) -> Optional[ManagedPath]:
        """Return the entry for path, or None if the path is not managed."""
        return self._paths.get(normalize_path(path))

    def get_managed_paths(self) -> tuple[ManagedPath, ...]:
        """Return all entries, sorted by path."""
        keys = sorted(self._paths, key=path_sort_key)
        return tuple(self._paths[key] for key in keys)

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path: str) -> bool:
        try:
            return self.get_managed_path(path) is not None
        except PatchArgumentError:
            return False

    def __iter__(self) -> Iterator[ManagedPath]:
        return iter(self.get_managed_paths())

    def __repr__(self) -> str:
        return f"ManagedPaths({list(self.get_managed_paths())!r})"

    def update_paths(
        self,
        root: Union[InstallRoot, str, os.PathLike],
        records: Iterable[Record],
        *actions: Union[Action, Iterable[Action]],
    ) -> ManagedPaths:
        """Apply the change records whose action is in actions.

        Args:
            root: The installation root, or a path to it
            records: Change records of one patch operation, in order
            *actions: The actions to act on, given one by one or as a single
                collection; records with any other action are skipped

        Returns:
            This registry, updated in place.

        If a filesystem query fails the registry is left exactly as it was
        before the call and the error is raised.
        """
        install_root = _as_install_root(root)
        wanted = _action_filter(actions)

        names = " ".join(act.name for act in wanted)
        debug(2, 0, f"Updating managed paths for: {names} ...")
        saved = dict(self._paths)
        try:
            for rec in records:
                self._apply_record(install_root, rec, wanted)
        except Exception:
            self._paths = saved
            raise
        debug(2, 0, "Updating managed paths... done")

        return self

    def _apply_record(
        self, root: InstallRoot, rec: Record, wanted: frozenset[Action]
    ) -> None:
        act = rec.action
        if act not in wanted:
            debug(2, 1, f"--- Skipping {rec}")
            return
        if rec.patch_id.same_name(SERVER_ID):
            raise PatchArgumentError(f"Change record owned by the server: {rec}")

        match act:
            case Action.ADD | Action.UPDATE:
                self._add_path_owner(root, rec.path, rec.patch_id)
            case Action.DELETE:
                self._remove_path_owner(root, rec.path, rec.patch_id)

    def _add_path_owner(self, root: InstallRoot, path: str, owner: PatchId) -> None:
        """Make owner an owner of path, and of any parent directory the path
        brings into existence.

        Parents are handled before the path itself. A parent that is already
        managed always gets the owner too, so that managed paths form an
        unbroken chain up to the installation root.
        """
        parent_path = parent(path)
        if parent_path:
            debug(3, depth(path), f"add_path_owner({path}): checking {parent_path}")
            if not root.exists(parent_path) or parent_path in self._paths:
                self._add_path_owner(root, parent_path, owner)

        mpath = self._paths.get(path)
        if mpath is None:
            owners = [owner]
            if root.is_file(path):
                owners.insert(0, SERVER_ID)
            mpath = ManagedPath(path, owners)
        else:
            owners = remove_owner(mpath.owners, owner)
            owners.append(owner)
            mpath = mpath.with_owners(owners)

        debug(1, depth(path), f"OWN: {mpath}")
        self._paths[path] = mpath

    def _remove_path_owner(self, root: InstallRoot, path: str, owner: PatchId) -> None:
        """Retract owner's claim on path, then on every parent directory that
        no longer exists on disk.

        An entry left with only the server as owner is dropped: the path is
        plain server content again.
        """
        mpath = self._paths.get(path)
        if mpath is not None:
            owners = remove_owner(mpath.owners, owner)
            if owners == [SERVER_ID]:
                owners.clear()
            if owners:
                mpath = mpath.with_owners(owners)
                debug(1, depth(path), f"DISOWN: {mpath}")
                self._paths[path] = mpath
            else:
                debug(1, depth(path), f"DROP: {path}")
                del self._paths[path]

        parent_path = parent(path)
        if parent_path:
            debug(3, depth(path), f"remove_path_owner({path}): checking {parent_path}")
            if not root.exists(parent_path):
                self._remove_path_owner(root, parent_path, owner)
