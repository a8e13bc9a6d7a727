# Patchtool - managed path ownership for server patching
# Copyright (C) 2025 The patchtool authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Type definitions for patchtool.

This module contains the enums, dataclasses and exceptions that define the
core data structures used throughout patchtool.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence


# =============================================================================
# Exceptions
# =============================================================================


class PatchError(Exception):
    """Base class for all patchtool errors."""

    def __init__(self, message: str, errno: int = 1):
        super().__init__(message)
        self.message = message
        self.errno = errno


class PatchArgumentError(PatchError):
    """Invalid argument passed to a patchtool API."""


class PatchIOError(PatchError):
    """A filesystem query failed for a reason other than non-existence."""


class PatchStateError(PatchError):
    """The tool cannot start, e.g. the version resource is unusable."""


# =============================================================================
# Owner identity
# =============================================================================

_VERSION_SUFFIX = re.compile(r"^(?P<name>.+)-(?P<version>\d.*)$")


@dataclass(frozen=True, slots=True)
class PatchId:
    """
    Identity of a patch: a family name plus a revision within that family.

    Two ids with the same name are the same owner as far as path ownership
    is concerned, whatever their versions.
    """

    name: str
    version: str = "0.0.0"

    def __post_init__(self):
        if not self.name:
            raise PatchArgumentError("Patch name must not be empty")

    @classmethod
    def from_string(cls, text: str) -> PatchId:
        """Parse ``name-version``; the version is everything after the last
        dash that is followed by a digit."""
        if not text:
            raise PatchArgumentError("Patch id must not be empty")
        match = _VERSION_SUFFIX.match(text)
        if match:
            return cls(match.group("name"), match.group("version"))
        return cls(text)

    def same_name(self, other: PatchId) -> bool:
        return self.name == other.name

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"


# Marks content that was on disk before any patch touched it.
SERVER_ID = PatchId("server", "0.0.0")


# =============================================================================
# Managed paths
# =============================================================================


def normalize_path(path: str) -> str:
    """
    Normalize a relative path to the form used as a registry key.

    Collapses '//' and '/./', strips leading './' and trailing '/'.
    Absolute paths and '..' segments are rejected.
    """
    if path is None:
        raise PatchArgumentError("Path must not be None")
    path = str(path).replace("\\", "/")
    if path.startswith("/"):
        raise PatchArgumentError(f"Managed path must be relative: {path}")

    segments = [seg for seg in path.split("/") if seg not in ("", ".")]
    if ".." in segments:
        raise PatchArgumentError(f"Managed path must not contain '..': {path}")
    if not segments:
        raise PatchArgumentError(f"Managed path must not be empty: {path!r}")

    return "/".join(segments)


def path_sort_key(path: str) -> tuple[str, ...]:
    """Sort key that orders paths segment by segment ('a' < 'a/b' < 'a-b')."""
    return tuple(path.split("/"))


@dataclass(frozen=True, slots=True)
class ManagedPath:
    """
    A relative path together with the patches that own it.

    Owners are kept in application order, oldest first. No two owners share
    a name, and SERVER_ID, when present, is always first.
    """

    path: str
    owners: tuple[PatchId, ...]

    def __post_init__(self):
        object.__setattr__(self, "path", normalize_path(self.path))
        if self.owners is None:
            raise PatchArgumentError(f"Owners must not be None: {self.path}")
        owners = tuple(self.owners)
        object.__setattr__(self, "owners", owners)

        if not owners:
            raise PatchArgumentError(f"Managed path without owners: {self.path}")

        names = [owner.name for owner in owners]
        if len(set(names)) != len(names):
            raise PatchArgumentError(
                f"Duplicate owner names for {self.path}: {', '.join(names)}"
            )
        if any(owner.same_name(SERVER_ID) for owner in owners[1:]):
            raise PatchArgumentError(
                f"Server owner must come first for {self.path}: "
                f"{', '.join(map(str, owners))}"
            )

    def with_owners(self, owners: Sequence[PatchId]) -> ManagedPath:
        """Return a copy of this entry with a different owner list."""
        return ManagedPath(self.path, tuple(owners))

    def __str__(self) -> str:
        return f"{self.path} {[str(owner) for owner in self.owners]}"


# =============================================================================
# Change records
# =============================================================================


class Action(Enum):
    """What a patch does to a single path."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class Record:
    """
    A single change produced by diffing patch content.

    The path is relative to the installation root.
    """

    path: str
    action: Action
    patch_id: PatchId

    def __post_init__(self):
        object.__setattr__(self, "path", normalize_path(self.path))

    def __str__(self) -> str:
        action = self.action.name if isinstance(self.action, Action) else self.action
        return f"{action} {self.path} ({self.patch_id})"


@dataclass
class PatchResult:
    """
    Result of an install, update or uninstall.

    Attributes:
        patch_id: The patch that was installed, updated to, or removed
        records: The change records that were applied, in order
        managed_paths: Snapshot of the registry after the operation
    """

    patch_id: PatchId
    records: tuple[Record, ...] = ()
    managed_paths: tuple[ManagedPath, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        patch_id: PatchId,
        records: Iterable[Record],
        managed_paths: Iterable[ManagedPath],
    ) -> PatchResult:
        return cls(patch_id, tuple(records), tuple(managed_paths))
