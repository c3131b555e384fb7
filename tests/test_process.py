"""Tests for the async command runner."""

import pytest

from infra_reconcile.process import CommandResult, run_command


@pytest.mark.asyncio
async def test_missing_binary_reported():
    result = await run_command(["definitely-not-a-real-binary-xyz"], timeout=5)

    assert result.returncode == 127
    assert not result.ok
    assert "command not found" in result.error_text()


def test_error_text_fallbacks():
    assert CommandResult(returncode=2).error_text() == "Command failed with code 2"
    assert CommandResult(returncode=1, timed_out=True).error_text() == "Command timed out"
    assert CommandResult(returncode=0).ok
