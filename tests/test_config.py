"""
Configuration tests.
"""

import pytest

from riskpulse.config import AppConfig, ConfigValidationError, load_config
from riskpulse.scoring.types import INDICATOR_CATALOG


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


class TestLoadConfig:
    """Test YAML loading."""

    def test_missing_file(self, tmp_path):
        """Should raise when the file does not exist."""
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_empty_file_uses_defaults(self, tmp_path):
        """Should fall back to defaults for an empty file."""
        config = load_config(write_config(tmp_path, ""))

        assert config == AppConfig()
        assert config.scoring.weights == INDICATOR_CATALOG
        assert config.anomaly.extreme_threshold == 2.0
        assert config.risk.low_upper == 40.0
        assert config.provider.type == "static"

    def test_full_config(self, tmp_path):
        """Should load every section."""
        path = write_config(
            tmp_path,
            f"""
database:
  path: {tmp_path / "data" / "test.db"}
scoring:
  weights:
    fear_greed: 0.5
    funding: 0.5
  source_timeout_seconds: 5
anomaly:
  extreme_threshold: 2.5
  window: 90
  min_history: 30
risk:
  low_upper: 35
  high_lower: 65
automation:
  fetch_timeout_seconds: 3
  max_concurrency: 4
provider:
  type: static
  static_scores:
    btc: 25
    ETH: 72
advanced:
  log_level: DEBUG
""",
        )

        config = load_config(path)

        assert config.scoring.weights == {"fear_greed": 0.5, "funding": 0.5}
        assert config.scoring.source_timeout_seconds == 5
        assert config.anomaly.window == 90
        assert config.anomaly.min_history == 30
        assert config.risk.high_lower == 65
        assert config.automation.max_concurrency == 4
        assert config.provider.static_scores == {"BTC": 25.0, "ETH": 72.0}
        assert config.advanced.log_level == "DEBUG"

    def test_env_substitution(self, tmp_path, monkeypatch):
        """Should substitute ${VAR} from the environment."""
        monkeypatch.setenv("RISK_API_URL", "https://risk.example.com")
        monkeypatch.setenv("RISK_API_KEY", "secret")
        path = write_config(
            tmp_path,
            """
provider:
  type: http
  base_url: "${RISK_API_URL}"
  api_key: "${RISK_API_KEY}"
""",
        )

        config = load_config(path)

        assert config.provider.base_url == "https://risk.example.com"
        assert config.provider.api_key == "secret"


class TestValidation:
    """Test configuration validation."""

    @pytest.mark.parametrize(
        "text",
        [
            "scoring:\n  weights:\n    fear_greed: -0.1\n",
            "scoring:\n  weights:\n    fear_greed: 0\n    funding: 0\n",
            "risk:\n  low_upper: 80\n  high_lower: 70\n",
            "anomaly:\n  extreme_threshold: 0\n",
            "provider:\n  type: carrier_pigeon\n",
            "provider:\n  type: http\n",
            "advanced:\n  log_level: LOUD\n",
            "automation:\n  retries: 3\n",
        ],
    )
    def test_invalid_config(self, tmp_path, text):
        """Should raise ConfigValidationError."""
        with pytest.raises(ConfigValidationError):
            load_config(write_config(tmp_path, text))

    def test_http_provider_with_unset_env_var(self, tmp_path, monkeypatch):
        """Should reject an http provider whose URL resolves to empty."""
        monkeypatch.delenv("RISK_API_URL", raising=False)
        path = write_config(tmp_path, "provider:\n  type: http\n  base_url: \"${RISK_API_URL}\"\n")

        with pytest.raises(ConfigValidationError):
            load_config(path)
