from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from hostctl.backend import BackendError
from hostctl.config import DEFAULT_SETTLE_DELAY
from hostctl.models import OperationResult, ServiceState, TemplateVars
from hostctl.profiles import Probe, Profile
from hostctl.reporter import RED, YELLOW, Reporter
from hostctl.services import SystemdClient

log = logging.getLogger(__name__)

BACKUP_STAMP = "%Y%m%d_%H%M%S"


class Orchestrator:
    """Brings a profile's services up and down on one backend.

    No step rolls back: failures are recorded in the OperationResult and the
    remaining steps still run. The only exception is a configuration write
    failure during ``bring_up``, which aborts before any service is started.
    """

    def __init__(
        self,
        profile: Profile,
        backend,
        reporter: Reporter | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.profile = profile
        self.backend = backend
        self.systemd = SystemdClient(backend)
        self.reporter = reporter or Reporter()
        self.settle_delay = settle_delay
        self.clock = clock
        self.sleep = sleep

    # Helpers

    async def template_vars(self) -> TemplateVars:
        hostname = "localhost"
        server_ip = "127.0.0.1"
        result = await self.backend.run(["hostname"])
        if result.ok and result.stdout.strip():
            hostname = result.stdout.strip()
        else:
            self.reporter.warning(f"⚠️  Could not read hostname, using {hostname}")
        result = await self.backend.run(["hostname", "-I"])
        if result.ok and result.stdout.split():
            server_ip = result.stdout.split()[0]
        else:
            self.reporter.warning(f"⚠️  Could not read server IP, using {server_ip}")
        return TemplateVars(
            domain=self.profile.domain,
            target_server=self.profile.target_server,
            dns_server_ip=self.profile.dns_server_ip,
            hostname=hostname,
            server_ip=server_ip,
            generated_at=self.clock(),
        )

    async def _run_command(self, result: OperationResult, label: str, argv: tuple[str, ...]) -> None:
        self.reporter.progress(f"{label}...")
        outcome = await self.backend.run(list(argv))
        if outcome.stdout.strip():
            self.reporter.plain(outcome.stdout.rstrip())
        if outcome.ok:
            result.ok(label)
        else:
            reason = outcome.stderr.strip() or f"exit status {outcome.exit_status}"
            self.reporter.failure(f"❌ {label} failed: {reason}")
            result.failed(label, reason)

    async def _probe(self, probe: Probe) -> None:
        self.reporter.progress(probe.title)
        outcome = await self.backend.run(list(probe.argv))
        lines = outcome.stdout.rstrip().splitlines() if outcome.ok else []
        if probe.max_lines is not None:
            lines = lines[: probe.max_lines]
        if not lines:
            log.debug("Probe %s gave no output (exit %d)", probe.argv[0], outcome.exit_status)
            self.reporter.plain(probe.fallback)
            return
        for line in lines:
            self.reporter.plain(line)

    async def _ensure_packages(self, result: OperationResult) -> None:
        for package in self.profile.packages:
            query = await self.backend.run(["rpm", "-q", package.name])
            if query.ok:
                continue
            name = f"install {package.name}"
            self.reporter.progress(f"Installing {package.name}...")
            install = await self.backend.run(["yum", "install", "-y", *package.install])
            if install.ok:
                self.reporter.success(f"✅ {package.name} installed")
                result.ok(name)
            else:
                reason = install.stderr.strip() or f"exit status {install.exit_status}"
                self.reporter.failure(f"❌ Failed to install {package.name}")
                result.failed(name, reason)

    async def _prepare_directories(self, result: OperationResult) -> None:
        if not self.profile.directories:
            return
        self.reporter.progress("Creating directories...")
        for directory in self.profile.directories:
            argvs = [["mkdir", "-p", directory.path]]
            if directory.owner:
                argvs.append(["chown", directory.owner, directory.path])
            if directory.mode:
                argvs.append(["chmod", directory.mode, directory.path])
            for argv in argvs:
                outcome = await self.backend.run(argv)
                if not outcome.ok:
                    reason = outcome.stderr.strip() or f"exit status {outcome.exit_status}"
                    self.reporter.failure(f"❌ {' '.join(argv)} failed: {reason}")
                    result.failed(f"{argv[0]} {directory.path}", reason)
                    break
            else:
                result.ok(f"directory {directory.path}")

    async def _render_templates(self, result: OperationResult, variables: TemplateVars) -> bool:
        for template in self.profile.templates:
            name = f"write {template.path}"
            self.reporter.progress(f"Creating {template.description}...")
            try:
                content = template.render(variables)
                if template.backup_existing and await self.backend.exists(template.path):
                    await self.backend.copy_file(template.path, template.path + ".backup")
                await self.backend.write_file(template.path, content)
            except (BackendError, ValueError) as exc:
                self.reporter.failure(f"❌ Failed to write {template.path}: {exc}")
                result.failed(name, str(exc))
                return False

            problems = []
            for argv in (
                ["chown", template.owner, template.path] if template.owner else None,
                ["chmod", template.mode, template.path] if template.mode else None,
            ):
                if argv is None:
                    continue
                outcome = await self.backend.run(argv)
                if not outcome.ok:
                    problems.append(f"{' '.join(argv)}: {outcome.stderr.strip() or outcome.exit_status}")
            if problems:
                self.reporter.warning(f"⚠️  {template.path} written, but {'; '.join(problems)} failed")
                result.failed(name, "; ".join(problems))
            else:
                self.reporter.success(f"✅ {template.description} written to {template.path}")
                result.ok(name)
        return True

    async def _free_backup_name(self, base: str) -> str:
        # rename overwrites silently, so never reuse an existing backup name
        candidate = base
        n = 0
        while await self.backend.exists(candidate):
            n += 1
            candidate = f"{base}.{n}"
        return candidate

    async def _archive(self, result: OperationResult) -> None:
        stamp = self.clock().strftime(BACKUP_STAMP)
        for archive in self.profile.archives:
            name = f"archive {archive.path}"
            self.reporter.progress(f"Cleaning up {archive.path}...")
            try:
                if await self.backend.exists(archive.path):
                    if await self.backend.read_file(archive.path) == archive.placeholder:
                        self.reporter.success(f"✅ {archive.path} already disabled")
                        result.skipped(name, "already archived")
                        continue
                    backup = await self._free_backup_name(f"{archive.path}.backup.{stamp}")
                    await self.backend.rename(archive.path, backup)
                    self.reporter.success(f"✅ Previous {archive.path} kept as {backup}")
                await self.backend.write_file(archive.path, archive.placeholder)
            except BackendError as exc:
                self.reporter.failure(f"❌ Failed to archive {archive.path}: {exc}")
                result.failed(name, str(exc))
                continue
            result.ok(name)

    # Operations

    async def bring_up(self) -> OperationResult:
        profile = self.profile
        result = OperationResult("up")
        self.reporter.banner(f"🚀 Starting {profile.title}...")

        await self._ensure_packages(result)
        variables = await self.template_vars()
        await self._prepare_directories(result)

        if not await self._render_templates(result, variables):
            self.reporter.failure(f"❌ {profile.title} configuration failed, no services started")
            result.aborted = True
            return result

        installed = await self.systemd.installed_units()
        for unit in profile.services:
            if unit not in installed:
                self.reporter.warning(f"⚠️  {unit} not found, skipping...")
                result.skipped(f"start {unit}", "not found")
                continue
            self.reporter.progress(f"Starting {unit}...")
            await self.systemd.start(unit)
            await self.systemd.enable(unit)
            if await self.systemd.is_active(unit):
                self.reporter.success(f"✅ {unit} started successfully")
                result.ok(f"start {unit}")
            else:
                self.reporter.failure(f"❌ Failed to start {unit}")
                result.failed(f"start {unit}", "not active after start")

        for command in profile.post_up:
            await self._run_command(result, command.label, command.argv)

        self.reporter.banner(f"🎉 {profile.title} is UP and running!")
        for probe in profile.summary_probes:
            self.reporter.plain()
            await self._probe(probe)
        if profile.instructions is not None:
            self.reporter.plain()
            self.reporter.success(profile.instructions_title)
            self.reporter.plain(profile.instructions(variables).rstrip())
        return result

    async def bring_down(self) -> OperationResult:
        profile = self.profile
        result = OperationResult("down")
        self.reporter.banner(f"🛑 Stopping {profile.title}...", RED)

        for command in profile.pre_down:
            await self._run_command(result, command.label, command.argv)

        installed = await self.systemd.installed_units()
        for unit in reversed(profile.services):
            if unit not in installed:
                self.reporter.warning(f"⚠️  {unit} not found, skipping...")
                result.skipped(f"stop {unit}", "not found")
                continue
            self.reporter.progress(f"Stopping {unit}...")
            await self.systemd.stop(unit)
            if not await self.systemd.is_active(unit):
                self.reporter.success(f"✅ {unit} stopped successfully")
                result.ok(f"stop {unit}")
            else:
                self.reporter.failure(f"❌ Failed to stop {unit}")
                result.failed(f"stop {unit}", "still active after stop")

        await self._archive(result)

        self.reporter.banner(f"🔴 {profile.title} is DOWN!", RED)
        return result

    async def status(self) -> OperationResult:
        profile = self.profile
        result = OperationResult("status")
        self.reporter.banner(f"📊 {profile.title} Status:", YELLOW)
        self.reporter.plain()

        installed = await self.systemd.installed_units()
        for unit in profile.services:
            state = await self.systemd.state(unit, installed)
            if state is ServiceState.RUNNING:
                self.reporter.success(f"✅ {unit}: RUNNING")
            elif state is ServiceState.STOPPED:
                self.reporter.failure(f"❌ {unit}: STOPPED")
            else:
                self.reporter.warning(f"⚠️  {unit}: NOT INSTALLED")
            result.ok(f"{unit}: {state.value}")

        if profile.status_files:
            self.reporter.plain()
            self.reporter.progress("Configuration files:")
            for path in profile.status_files:
                if await self.backend.exists(path):
                    self.reporter.success(f"✅ {path} exists")
                else:
                    self.reporter.failure(f"❌ {path} missing")

        for probe in profile.status_probes:
            self.reporter.plain()
            await self._probe(probe)
        return result

    async def service_states(self) -> dict[str, ServiceState]:
        installed = await self.systemd.installed_units()
        return {unit: await self.systemd.state(unit, installed) for unit in self.profile.services}

    async def restart(self) -> OperationResult:
        result = OperationResult("restart")
        self.reporter.banner(f"🔄 Restarting {self.profile.title}...", YELLOW)
        result.extend(await self.bring_down())
        log.debug("Settling for %.1f seconds", self.settle_delay)
        await self.sleep(self.settle_delay)
        result.extend(await self.bring_up())
        return result
