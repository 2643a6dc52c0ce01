from __future__ import annotations

import asyncio
import logging
import shlex
from pathlib import Path

import asyncssh

from hostctl.backend import BackendError
from hostctl.models import CommandResult, Host

log = logging.getLogger(__name__)

CONNECT_TIMEOUT = 3


class SSHBackend:
    """Same interface as LocalBackend, executed on a remote host over SSH.

    Files are written with ``tee`` and moved with ``mv`` so that ``sudo``
    covers them the same way it covers ``systemctl``.
    """

    def __init__(self, host: Host, sudo: bool = False):
        self.host = host
        self.address = host.address
        self.sudo = sudo
        self._conn: asyncssh.SSHClientConnection | None = None

    async def connect(self) -> None:
        if self._conn is not None:
            return
        log.info("Connecting to %s", self.address)
        ssh_config = Path.home() / ".ssh" / "config"
        config_paths = [str(ssh_config)] if ssh_config.exists() else []
        options = {"known_hosts": None}
        if self.host.user:
            options["username"] = self.host.user
        if self.host.port:
            options["port"] = self.host.port
        try:
            try:
                self._conn = await asyncio.wait_for(
                    asyncssh.connect(self.address, config=config_paths, **options),
                    timeout=CONNECT_TIMEOUT,
                )
            except asyncio.TimeoutError:
                raise
            except (OSError, asyncssh.Error):
                if not config_paths:
                    raise
                log.warning("SSH config parse failed for %s, retrying without config", self.address, exc_info=True)
                self._conn = await asyncio.wait_for(
                    asyncssh.connect(self.address, **options),
                    timeout=CONNECT_TIMEOUT,
                )
        except asyncio.TimeoutError as exc:
            log.error("SSH connection timed out for %s", self.address)
            raise BackendError(f"{self.address}: connection timed out") from exc
        except (OSError, asyncssh.Error) as exc:
            log.error("SSH connection failed for %s: %s", self.address, exc)
            raise BackendError(f"{self.address}: {exc}") from exc
        log.info("Connected to %s", self.address)

    def _command(self, argv: list[str]) -> str:
        command = shlex.join(argv)
        return f"sudo {command}" if self.sudo else command

    async def run(self, argv: list[str], input: str | None = None) -> CommandResult:
        await self.connect()
        command = self._command(argv)
        log.info("Running command on %s: %s", self.address, command)
        try:
            result = await self._conn.run(command, input=input, check=False)
        except (OSError, asyncssh.Error) as exc:
            log.error("Command failed on %s (%s): %s", self.address, command, exc)
            raise BackendError(f"{self.address}: {exc}") from exc
        stderr = result.stderr or ""
        if stderr:
            log.warning("Command stderr on %s (%s): %s", self.address, command, stderr.strip())
        exit_status = result.exit_status if result.exit_status is not None else 255
        log.debug("Command on %s finished (exit %d): %s", self.address, exit_status, command)
        return CommandResult(
            argv=list(argv),
            exit_status=exit_status,
            stdout=result.stdout or "",
            stderr=stderr,
        )

    async def _checked(self, argv: list[str], input: str | None = None, what: str = "") -> CommandResult:
        result = await self.run(argv, input=input)
        if not result.ok:
            reason = result.stderr.strip() or f"exit status {result.exit_status}"
            raise BackendError(f"{self.address}: cannot {what}: {reason}")
        return result

    async def write_file(self, path: str, content: str) -> None:
        await self._checked(["sh", "-c", f"cat > {shlex.quote(path)}"], input=content, what=f"write {path}")

    async def read_file(self, path: str) -> str:
        result = await self._checked(["cat", path], what=f"read {path}")
        return result.stdout

    async def exists(self, path: str) -> bool:
        result = await self.run(["test", "-e", path])
        return result.ok

    async def rename(self, src: str, dst: str) -> None:
        await self._checked(["mv", src, dst], what=f"rename {src}")

    async def copy_file(self, src: str, dst: str) -> None:
        await self._checked(["cp", "-p", src, dst], what=f"copy {src}")

    async def close(self) -> None:
        if self._conn is not None:
            log.info("Closing SSH connection to %s", self.address)
            self._conn.close()
            self._conn = None
