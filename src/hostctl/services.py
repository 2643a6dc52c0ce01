from __future__ import annotations

import logging

from hostctl.models import CommandResult, ServiceState

log = logging.getLogger(__name__)


def parse_unit_files(output: str) -> set[str]:
    """Unit names from ``systemctl list-unit-files`` output.

    Service units are recorded both with and without their ``.service``
    suffix so either spelling can be looked up.
    """
    units: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if not parts or parts[0] == "UNIT":
            continue
        unit = parts[0]
        units.add(unit)
        if unit.endswith(".service"):
            units.add(unit[: -len(".service")])
    return units


class SystemdClient:
    """Thin wrapper over ``systemctl`` on a backend."""

    def __init__(self, backend):
        self.backend = backend

    async def installed_units(self) -> set[str]:
        result = await self.backend.run(
            ["systemctl", "list-unit-files", "--no-legend", "--no-pager"],
        )
        if not result.ok:
            log.warning("Listing unit files failed (exit %d): %s", result.exit_status, result.stderr.strip())
            return set()
        units = parse_unit_files(result.stdout)
        log.info("Discovered %d unit files on %s", len(units), self.backend.address)
        return units

    async def is_active(self, unit: str) -> bool:
        result = await self.backend.run(["systemctl", "is-active", "--quiet", unit])
        return result.ok

    async def state(self, unit: str, installed: set[str]) -> ServiceState:
        if unit not in installed:
            return ServiceState.NOT_INSTALLED
        if await self.is_active(unit):
            return ServiceState.RUNNING
        return ServiceState.STOPPED

    async def start(self, unit: str) -> CommandResult:
        return await self.backend.run(["systemctl", "start", unit])

    async def enable(self, unit: str) -> CommandResult:
        return await self.backend.run(["systemctl", "enable", unit])

    async def stop(self, unit: str) -> CommandResult:
        return await self.backend.run(["systemctl", "stop", unit])
