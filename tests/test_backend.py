"""
Tests for the local backend against a temporary directory.
"""
import pytest

from hostctl.backend import COMMAND_NOT_FOUND, BackendError, LocalBackend


@pytest.fixture
def local():
    return LocalBackend()


@pytest.mark.asyncio
async def test_run_captures_output(local):
    result = await local.run(["sh", "-c", "echo out; echo err >&2; exit 3"])
    assert result.exit_status == 3
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"
    assert not result.ok


@pytest.mark.asyncio
async def test_run_feeds_input(local):
    result = await local.run(["cat"], input="hello")
    assert result.ok
    assert result.stdout == "hello"


@pytest.mark.asyncio
async def test_missing_command_is_a_result(local):
    result = await local.run(["hostctl-no-such-command"])
    assert result.exit_status == COMMAND_NOT_FOUND
    assert not result.ok


@pytest.mark.asyncio
async def test_write_and_read(local, tmp_path):
    path = str(tmp_path / "exports")
    await local.write_file(path, "/data *(rw)\n")
    await local.write_file(path, "/data *(ro)\n")

    assert await local.exists(path)
    assert await local.read_file(path) == "/data *(ro)\n"


@pytest.mark.asyncio
async def test_write_into_missing_directory_fails(local, tmp_path):
    path = str(tmp_path / "missing" / "exports")
    with pytest.raises(BackendError, match="cannot write"):
        await local.write_file(path, "x")
    assert not (tmp_path / "missing").exists()


@pytest.mark.asyncio
async def test_rename_and_copy(local, tmp_path):
    src = tmp_path / "named.conf"
    src.write_text("options {};")

    await local.copy_file(str(src), str(tmp_path / "named.conf.backup"))
    await local.rename(str(src), str(tmp_path / "named.conf.old"))

    assert not src.exists()
    assert (tmp_path / "named.conf.backup").read_text() == "options {};"
    assert (tmp_path / "named.conf.old").read_text() == "options {};"


@pytest.mark.asyncio
async def test_rename_missing_file_fails(local, tmp_path):
    with pytest.raises(BackendError):
        await local.rename(str(tmp_path / "nope"), str(tmp_path / "other"))
