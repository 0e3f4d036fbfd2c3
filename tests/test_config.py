"""
Tests for environment-based configuration
"""

import pytest
from decimal import Decimal

from boapay import config as config_module
from boapay.config import BoapayConfig, get_config, reload_config


class TestBoapayConfig:
    """Test defaults, parsing and reloading"""

    @pytest.fixture(autouse=True)
    def restore_global(self):
        original = config_module.config
        yield
        config_module.config = original

    def test_defaults(self):
        config = BoapayConfig()

        assert config.database_url == "memory://"
        assert config.approval_threshold() is None
        assert config.international_delivery_days == 2

    def test_threshold_parsing(self):
        assert BoapayConfig(transfer_approval_threshold="10000.00").approval_threshold() == Decimal("10000.00")
        with pytest.raises(ValueError, match="Invalid transfer_approval_threshold"):
            BoapayConfig(transfer_approval_threshold="lots").approval_threshold()

    def test_reload_reads_environment(self, monkeypatch):
        monkeypatch.setenv("BOAPAY_TRANSFER_APPROVAL_THRESHOLD", "5000")
        monkeypatch.setenv("BOAPAY_API_PORT", "8080")

        reloaded = reload_config()

        assert get_config() is reloaded
        assert reloaded.approval_threshold() == Decimal("5000")
        assert reloaded.api_port == 8080
