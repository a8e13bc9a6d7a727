"""
Pytest configuration for patchtool tests.

Most tests drive ManagedPaths against FakeRoot, an in-memory installation
whose contents are declared up front, so that any combination of "exists on
disk" and "already managed" can be set up without touching the filesystem.
Tests that need a real directory use the ``server_home`` fixture.
"""

import os

import pytest

from patchtool import DiskRoot, PatchId, PatchIOError
from patchtool.util import parent, set_debug_level, set_test_mode


class FakeRoot:
    """In-memory installation root.

    Files are declared by path; their parent directories exist implicitly.
    Directories can also be declared on their own.
    """

    def __init__(self, files=(), dirs=()):
        self.files = set()
        self.dirs = set()
        self.queries = []
        for path in dirs:
            self.add_dir(path)
        for path in files:
            self.add_file(path)

    def add_dir(self, path):
        while path:
            self.dirs.add(path)
            path = parent(path)

    def add_file(self, path):
        self.files.add(path)
        self.add_dir(parent(path))

    def remove(self, path):
        """Remove a file or a directory together with everything below it."""
        prefix = path + "/"
        self.files = {p for p in self.files if p != path and not p.startswith(prefix)}
        self.dirs = {p for p in self.dirs if p != path and not p.startswith(prefix)}

    def exists(self, path):
        self.queries.append(("exists", path))
        return path in self.files or path in self.dirs

    def is_file(self, path):
        self.queries.append(("is_file", path))
        return path in self.files


class FailingRoot(FakeRoot):
    """FakeRoot that fails every query about one path."""

    def __init__(self, failing_path, files=(), dirs=()):
        super().__init__(files, dirs)
        self.failing_path = failing_path

    def exists(self, path):
        if path == self.failing_path:
            raise PatchIOError(f"Cannot stat {path} (Permission denied)", errno=13)
        return super().exists(path)

    def is_file(self, path):
        if path == self.failing_path:
            raise PatchIOError(f"Cannot stat {path} (Permission denied)", errno=13)
        return super().is_file(path)


@pytest.fixture(autouse=True)
def quiet_debug():
    """Run every test with debug output off, and restore it afterwards."""
    set_debug_level(0)
    set_test_mode(False)
    yield
    set_debug_level(0)
    set_test_mode(False)


@pytest.fixture
def fake_root():
    return FakeRoot()


@pytest.fixture
def server_home(tmp_path, monkeypatch):
    """An empty server installation directory; cwd is set to it."""
    home = tmp_path / "server"
    home.mkdir()
    monkeypatch.chdir(home)
    return home


@pytest.fixture
def disk_root(server_home):
    return DiskRoot(server_home)


@pytest.fixture
def patch_ids():
    return {
        "p1": PatchId("patch-1", "1.0.0"),
        "p1v2": PatchId("patch-1", "2.0.0"),
        "p2": PatchId("patch-2", "1.0.0"),
        "p3": PatchId("patch-3", "1.0.0"),
    }


def is_root():
    return hasattr(os, "geteuid") and os.geteuid() == 0
