"""
Shared fixtures: an in-memory backend standing in for a host's systemd and filesystem.
"""
import posixpath
from datetime import datetime

import pytest
from rich.console import Console

from hostctl.backend import BackendError
from hostctl.models import CommandResult
from hostctl.orchestrator import Orchestrator
from hostctl.reporter import Reporter

FIXED_NOW = datetime(2024, 5, 17, 9, 30, 0)


class FakeBackend:
    """Records every command and file operation in ``events``."""

    address = "fake-host"

    def __init__(self, units=(), active=(), files=None, dirs=("/etc", "/var/named", "/etc/httpd/conf.d")):
        self.units = set(units)
        self.active = set(active)
        self.files = dict(files or {})
        self.dirs = set(dirs)
        self.events = []
        self.outputs = {}
        self.missing_commands = set()
        self.broken_units = set()
        self.stuck_units = set()
        self.unwritable = set()
        self.closed = False

    @property
    def commands(self):
        return [e[1] for e in self.events if e[0] == "run"]

    def systemctl_calls(self, action):
        return [argv[-1] for argv in self.commands if argv[0] == "systemctl" and argv[1] == action]

    async def run(self, argv, input=None):
        argv = list(argv)
        self.events.append(("run", argv))
        name = argv[0]
        if name in self.missing_commands:
            return CommandResult(argv, 127, "", f"{name}: command not found")
        if name == "systemctl":
            return self._systemctl(argv)
        if name == "mkdir":
            self.dirs.add(argv[-1])
        if tuple(argv) in self.outputs:
            out = self.outputs[tuple(argv)]
            return out if isinstance(out, CommandResult) else CommandResult(argv, 0, out)
        if argv == ["hostname"]:
            return CommandResult(argv, 0, "nas01\n")
        if argv == ["hostname", "-I"]:
            return CommandResult(argv, 0, "10.0.0.5 172.17.0.1 \n")
        return CommandResult(argv, 0)

    def _systemctl(self, argv):
        action, unit = argv[1], argv[-1]
        if action == "list-unit-files":
            listing = "".join(f"{u}.service  enabled  enabled\n" for u in sorted(self.units))
            return CommandResult(argv, 0, listing)
        if action == "start" and unit not in self.broken_units:
            self.active.add(unit)
        elif action == "stop" and unit not in self.stuck_units:
            self.active.discard(unit)
        elif action == "is-active":
            return CommandResult(argv, 0 if unit in self.active else 3)
        return CommandResult(argv, 0)

    async def write_file(self, path, content):
        self.events.append(("write", path))
        if path in self.unwritable:
            raise BackendError(f"cannot write {path}: Permission denied")
        if posixpath.dirname(path) not in self.dirs:
            raise BackendError(f"cannot write {path}: No such file or directory")
        self.files[path] = content

    async def read_file(self, path):
        try:
            return self.files[path]
        except KeyError:
            raise BackendError(f"cannot read {path}: No such file or directory") from None

    async def exists(self, path):
        return path in self.files

    async def rename(self, src, dst):
        self.events.append(("rename", src, dst))
        self.files[dst] = self.files.pop(src)

    async def copy_file(self, src, dst):
        self.events.append(("copy", src, dst))
        self.files[dst] = self.files[src]

    async def close(self):
        self.closed = True


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_orchestrator():
    """Build an Orchestrator with a quiet reporter, fixed clock and recorded sleeps."""

    def factory(profile, backend, settle_delay=2):
        async def fake_sleep(seconds):
            backend.events.append(("sleep", seconds))

        return Orchestrator(
            profile,
            backend,
            reporter=Reporter(Console(quiet=True)),
            settle_delay=settle_delay,
            clock=lambda: FIXED_NOW,
            sleep=fake_sleep,
        )

    return factory
