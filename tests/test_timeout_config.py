"""Tests for timeout configuration."""

from infra_reconcile.timeout_config import Timeouts, _get_timeout


class TestGetTimeout:
    def test_default(self, monkeypatch):
        monkeypatch.delenv("RECONCILE_TIMEOUT_TEST", raising=False)
        assert _get_timeout("RECONCILE_TIMEOUT_TEST", 42) == 42

    def test_override(self, monkeypatch):
        monkeypatch.setenv("RECONCILE_TIMEOUT_TEST", "7")
        assert _get_timeout("RECONCILE_TIMEOUT_TEST", 42) == 7

    def test_invalid_values_fall_back(self, monkeypatch):
        for value in ("abc", "0", "-5"):
            monkeypatch.setenv("RECONCILE_TIMEOUT_TEST", value)
            assert _get_timeout("RECONCILE_TIMEOUT_TEST", 42) == 42


def test_all_timeouts_positive():
    for name in ("QUICK", "SCAN_QUERY", "TERRAFORM_IMPORT", "TERRAFORM_STATE_RM", "CLOUD_DELETE"):
        assert getattr(Timeouts, name) > 0
