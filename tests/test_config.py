# tests/test_config.py
"""Tests for registry configuration."""

import logging
import tempfile
from pathlib import Path

import pytest

from provenance.config import RegistryConfig


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestRegistryConfig:
    """Tests for RegistryConfig."""

    def test_defaults(self):
        config = RegistryConfig()
        assert config.data_dir is None
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.level == logging.INFO

    def test_from_yaml(self):
        config = RegistryConfig.from_yaml(
            "data_dir: /var/lib/provenance\n"
            "port: 9090\n"
            "log_level: debug\n"
        )
        assert config.data_dir == "/var/lib/provenance"
        assert config.port == 9090
        assert config.log_level == "DEBUG"
        assert config.level == logging.DEBUG

    def test_empty_yaml_gives_defaults(self):
        assert RegistryConfig.from_yaml("") == RegistryConfig()

    def test_from_file(self, temp_dir):
        path = temp_dir / "registry.yaml"
        path.write_text("host: 0.0.0.0\nport: 0\n")

        config = RegistryConfig.from_file(path)

        assert config.host == "0.0.0.0"
        assert config.port == 0

    @pytest.mark.parametrize("content", [
        "port: 70000\n",
        "port: eighty\n",
        "log_level: LOUD\n",
        "host: ''\n",
        "data_dir: [a, b]\n",
        "colour: blue\n",
        "- just\n- a list\n",
    ])
    def test_rejects_bad_values(self, content):
        with pytest.raises(ValueError):
            RegistryConfig.from_yaml(content)

    def test_override_ignores_unset_flags(self):
        config = RegistryConfig(data_dir="/data", port=9000)

        overridden = config.override(data_dir=None, port=9001)

        assert overridden.data_dir == "/data"
        assert overridden.port == 9001
        assert config.port == 9000

    def test_to_dict(self):
        assert RegistryConfig(data_dir="/d").to_dict() == {
            "data_dir": "/d",
            "host": "127.0.0.1",
            "port": 8080,
            "log_level": "INFO",
        }
