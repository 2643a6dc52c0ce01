"""
Tests for the Textual dashboard, driven through the app pilot.
"""
import pytest
from textual.widgets import DataTable

from conftest import FakeBackend
from hostctl.app import HostctlApp
from hostctl.config import Settings
from hostctl.profiles import nfs_profile


def make_app(backend):
    settings = Settings(settle_delay=0)
    return HostctlApp(profile=nfs_profile(settings.nfs), backend=backend, settings=settings)


@pytest.mark.asyncio
async def test_lists_unit_states():
    backend = FakeBackend(units={"rpcbind"}, active={"rpcbind"})
    app = make_app(backend)

    async with app.run_test() as pilot:
        await app.workers.wait_for_complete()
        await pilot.pause()
        table = app.screen.query_one("#service-table", DataTable)
        assert table.row_count == 2
        assert str(table.get_row("rpcbind")[1]) == "● running"
        assert str(table.get_row("nfs-server")[1]) == "- not installed"


@pytest.mark.asyncio
async def test_bring_up_after_confirmation():
    backend = FakeBackend(units={"rpcbind", "nfs-server"})
    app = make_app(backend)

    async with app.run_test() as pilot:
        await app.workers.wait_for_complete()
        await pilot.press("u")
        await pilot.pause()
        await pilot.press("y")
        await pilot.pause()
        await app.workers.wait_for_complete()

        assert backend.active == {"rpcbind", "nfs-server"}
        assert "NFS Server is UP and running!" in app.last_log


@pytest.mark.asyncio
async def test_declined_confirmation_changes_nothing():
    backend = FakeBackend(units={"rpcbind", "nfs-server"}, active={"rpcbind", "nfs-server"})
    app = make_app(backend)

    async with app.run_test() as pilot:
        await app.workers.wait_for_complete()
        await pilot.press("d")
        await pilot.pause()
        await pilot.press("n")
        await pilot.pause()

        assert backend.systemctl_calls("stop") == []
        assert backend.active == {"rpcbind", "nfs-server"}
