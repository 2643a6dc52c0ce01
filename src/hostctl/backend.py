from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path

from hostctl.models import CommandResult

log = logging.getLogger(__name__)

# Exit status a shell reports for a command that is not on PATH.
COMMAND_NOT_FOUND = 127


class BackendError(Exception):
    pass


class LocalBackend:
    """Runs commands and touches files on the machine hostctl runs on."""

    address = "localhost"

    async def run(self, argv: list[str], input: str | None = None) -> CommandResult:
        log.info("Running command: %s", " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            log.warning("Command not found: %s", argv[0])
            return CommandResult(argv=list(argv), exit_status=COMMAND_NOT_FOUND, stderr=str(exc))
        except PermissionError as exc:
            log.error("Command not executable: %s: %s", argv[0], exc)
            return CommandResult(argv=list(argv), exit_status=126, stderr=str(exc))

        stdout, stderr = await proc.communicate(input.encode() if input is not None else None)
        result = CommandResult(
            argv=list(argv),
            exit_status=proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        if result.stderr:
            log.debug("Command stderr (%s): %s", argv[0], result.stderr.strip())
        log.debug("Command finished (exit %d): %s", result.exit_status, " ".join(argv))
        return result

    async def write_file(self, path: str, content: str) -> None:
        # The parent directory is never created here; a missing one is an error.
        log.info("Writing %s (%d bytes)", path, len(content))
        try:
            Path(path).write_text(content)
        except OSError as exc:
            raise BackendError(f"cannot write {path}: {exc.strerror or exc}") from exc

    async def read_file(self, path: str) -> str:
        try:
            return Path(path).read_text()
        except OSError as exc:
            raise BackendError(f"cannot read {path}: {exc.strerror or exc}") from exc

    async def exists(self, path: str) -> bool:
        return os.path.exists(path)

    async def rename(self, src: str, dst: str) -> None:
        log.info("Renaming %s -> %s", src, dst)
        try:
            os.rename(src, dst)
        except OSError as exc:
            raise BackendError(f"cannot rename {src}: {exc.strerror or exc}") from exc

    async def copy_file(self, src: str, dst: str) -> None:
        log.info("Copying %s -> %s", src, dst)
        try:
            shutil.copy2(src, dst)
        except OSError as exc:
            raise BackendError(f"cannot copy {src}: {exc.strerror or exc}") from exc

    async def close(self) -> None:
        pass
