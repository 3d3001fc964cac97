"""Unit tests for the audit integrity CLI commands."""

import asyncio
import re
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from typer.testing import CliRunner

from gig_api.cli.app import app
from gig_api.core.database import create_all_tables

runner = CliRunner()


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


@pytest.fixture
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> str:
    url = f"sqlite+aiosqlite:///{tmp_path / 'audit.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("JWT_SECRET_KEY", "cli-test-secret-key-of-enough-length")
    return url


def _create_schema(url: str) -> None:
    async def _run() -> None:
        engine = create_async_engine(url)
        try:
            await create_all_tables(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())


class TestVerifyChainCommand:
    def test_empty_chain_is_intact(self, cli_env: str) -> None:
        _create_schema(cli_env)
        result = runner.invoke(app, ["audit", "verify-chain"])
        assert result.exit_code == 0, result.output
        assert "Audit chain intact (0 entries)" in _strip_ansi(result.output)

    def test_broken_chain_exits_nonzero(self, cli_env: str) -> None:
        with patch("gig_api.cli.audit_cmd._verify_chain", new=AsyncMock(return_value=False)):
            result = runner.invoke(app, ["audit", "verify-chain"])
        assert result.exit_code == 1


class TestVerifyEntryCommand:
    def test_unknown_entry_exits_nonzero(self, cli_env: str) -> None:
        _create_schema(cli_env)
        result = runner.invoke(app, ["audit", "verify", "LOG-MISSING"])
        assert result.exit_code == 1
        assert "Error:" in _strip_ansi(result.output)

    def test_valid_entry(self, cli_env: str) -> None:
        with patch("gig_api.cli.audit_cmd._verify_entry", new=AsyncMock(return_value=True)) as verify:
            result = runner.invoke(app, ["audit", "verify", "LOG-ABC"])
        assert result.exit_code == 0
        verify.assert_awaited_once_with("LOG-ABC")
