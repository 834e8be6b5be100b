"""Tests for the proxy CLI command."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

pytest.importorskip("fastapi")

from autocache.cli.main import main
from autocache.config import CacheStrategy


class TestProxyCommand:
    """Tests for `autocache proxy`."""

    def test_builds_config_from_options(self):
        runner = CliRunner()
        with patch("autocache.proxy.server.run_server") as run_server:
            result = runner.invoke(
                main,
                ["proxy", "--port", "9000", "-s", "aggressive", "--no-retry", "--no-headers"],
                env={"ANTHROPIC_API_KEY": "sk-ant-test"},
            )

        assert result.exit_code == 0, result.output
        run_server.assert_called_once()
        config = run_server.call_args.args[0]
        assert config.port == 9000
        assert config.strategy is CacheStrategy.AGGRESSIVE
        assert config.retry_enabled is False
        assert config.add_response_headers is False
        assert config.api_key == "sk-ant-test"
        assert "http://127.0.0.1:9000" in result.output
        assert "sk-ant-test" not in result.output

    def test_defaults(self):
        runner = CliRunner()
        with patch("autocache.proxy.server.run_server") as run_server:
            result = runner.invoke(main, ["proxy"], env={"AUTOCACHE_PORT": "8181"})

        assert result.exit_code == 0
        config = run_server.call_args.args[0]
        assert config.port == 8181
        assert config.strategy is CacheStrategy.MODERATE
        assert config.host == "127.0.0.1"
