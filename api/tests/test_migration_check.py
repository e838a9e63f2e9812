"""Tests for the startup schema revision check."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from api.main import _assert_database_revision_current


class FakeConnection:
    def __init__(self, revisions=None, error: Exception | None = None):
        self.revisions = revisions or []
        self.error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, statement):
        if self.error is not None:
            raise self.error
        result = MagicMock()
        result.fetchall.return_value = [(revision,) for revision in self.revisions]
        return result


def _engine(connection: FakeConnection):
    engine = MagicMock()
    engine.connect.return_value = connection
    return engine


def _script(heads):
    script = MagicMock()
    script.get_heads.return_value = heads
    return script


CHECKED = SimpleNamespace(skip_migration_check=False)


@pytest.mark.asyncio
async def test_skip_flag_bypasses_check():
    with (
        patch("api.main.get_settings", return_value=SimpleNamespace(skip_migration_check=True)),
        patch("api.main.ScriptDirectory") as script_directory,
        patch("api.main.get_engine") as get_engine,
    ):
        await _assert_database_revision_current()

    script_directory.from_config.assert_not_called()
    get_engine.assert_not_called()


@pytest.mark.asyncio
async def test_current_schema_passes():
    with (
        patch("api.main.get_settings", return_value=CHECKED),
        patch("api.main.ScriptDirectory.from_config", return_value=_script(["004_billing"])),
        patch("api.main.get_engine", return_value=_engine(FakeConnection(["004_billing"]))),
    ):
        await _assert_database_revision_current()


@pytest.mark.asyncio
async def test_stale_schema_refuses_to_start():
    with (
        patch("api.main.get_settings", return_value=CHECKED),
        patch("api.main.ScriptDirectory.from_config", return_value=_script(["004_billing"])),
        patch("api.main.get_engine", return_value=_engine(FakeConnection(["003_events"]))),
    ):
        with pytest.raises(RuntimeError, match="revision mismatch"):
            await _assert_database_revision_current()


@pytest.mark.asyncio
async def test_unreadable_version_table_refuses_to_start():
    broken = FakeConnection(error=ConnectionRefusedError("database is down"))
    with (
        patch("api.main.get_settings", return_value=CHECKED),
        patch("api.main.ScriptDirectory.from_config", return_value=_script(["004_billing"])),
        patch("api.main.get_engine", return_value=_engine(broken)),
    ):
        with pytest.raises(RuntimeError, match="alembic upgrade head"):
            await _assert_database_revision_current()
