"""
Tests for systemd unit discovery and state.
"""
import pytest

from conftest import FakeBackend
from hostctl.models import ServiceState
from hostctl.services import SystemdClient, parse_unit_files

LISTING = """\
UNIT FILE                 STATE    PRESET
nfs-server.service        disabled disabled
rpcbind.service           enabled  enabled
rpcbind.socket            enabled  enabled

3 unit files listed.
"""


def test_parse_unit_files():
    units = parse_unit_files(LISTING)
    assert {"nfs-server", "nfs-server.service", "rpcbind", "rpcbind.socket"} <= units
    assert "UNIT" not in units
    assert "nfs" not in units


@pytest.mark.asyncio
async def test_state():
    client = SystemdClient(FakeBackend(units={"named", "httpd"}, active={"named"}))
    installed = await client.installed_units()

    assert await client.state("named", installed) is ServiceState.RUNNING
    assert await client.state("httpd", installed) is ServiceState.STOPPED
    assert await client.state("nfs-server", installed) is ServiceState.NOT_INSTALLED


@pytest.mark.asyncio
async def test_missing_systemctl_means_nothing_installed():
    backend = FakeBackend(units={"named"})
    backend.missing_commands.add("systemctl")
    assert await SystemdClient(backend).installed_units() == set()
