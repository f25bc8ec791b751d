"""
Unit Tests for application configuration
"""

import pytest

from stkpay import create_app
from stkpay.config import TestingConfig, config
from stkpay.errors import ConfigurationError


class MissingPasskeyConfig(TestingConfig):
    MPESA_PASSKEY = None


class MissingCredentialsConfig(TestingConfig):
    MPESA_CONSUMER_KEY = ''
    MPESA_CONSUMER_SECRET = ''


class TestConfiguration:
    """Test cases for startup configuration checks"""

    def test_testing_config_loads(self):
        app = create_app('testing')

        assert app.config['TESTING'] is True
        assert app.config['MPESA_SHORTCODE'] == '174379'

    def test_missing_setting_refuses_to_start(self, monkeypatch):
        monkeypatch.setitem(config, 'broken', MissingPasskeyConfig)

        with pytest.raises(ConfigurationError, match='MPESA_PASSKEY'):
            create_app('broken')

    def test_error_lists_every_missing_setting(self, monkeypatch):
        monkeypatch.setitem(config, 'broken', MissingCredentialsConfig)

        with pytest.raises(ConfigurationError) as exc_info:
            create_app('broken')

        assert 'MPESA_CONSUMER_KEY' in str(exc_info.value)
        assert 'MPESA_CONSUMER_SECRET' in str(exc_info.value)
