"""
CLI helper tests.
"""

import json
import sys
import pytest

from riskpulse.cli import (
    add_reminder,
    load_readings,
    main,
    parse_risk_overrides,
    score_readings,
    zscore_report,
)
from riskpulse.config import AppConfig
from riskpulse.database.models import RiskCondition
from riskpulse.database.repository import ReminderRepository
from riskpulse.scoring.types import INDICATOR_CATALOG, SentimentTier, Signal


class TestHelpers:
    """Test CLI helper functions."""

    def test_add_reminder(self, db):
        """Should persist an armed reminder."""
        reminder = add_reminder(db, "user-1", "eth", 150.0, 35.0, "below")

        stored = ReminderRepository(db).get_by_id(reminder.id)
        assert stored.symbol == "ETH"
        assert stored.name == "ETH"
        assert stored.risk_condition == RiskCondition.BELOW

    def test_parse_risk_overrides(self):
        """Should parse SYMBOL=SCORE pairs."""
        assert parse_risk_overrides("btc=25, ETH=72.5,") == {"BTC": 25.0, "ETH": 72.5}

    def test_parse_risk_overrides_invalid(self):
        """Should reject pairs without a score."""
        with pytest.raises(ValueError):
            parse_risk_overrides("BTC")

    def test_load_readings_defaults(self):
        """Should fill weight and signal when omitted."""
        readings = load_readings(
            [{"name": "etf", "value": 0.71}, {"name": "x", "value": 0.2, "weight": 0.5, "signal": "bullish"}],
            dict(INDICATOR_CATALOG),
        )

        assert readings[0].weight == INDICATOR_CATALOG["etf"]
        assert readings[0].signal == Signal.BULLISH
        assert readings[1].weight == 0.5
        assert readings[1].signal == Signal.BULLISH

    def test_score_readings(self, tmp_path, scenario_readings):
        """Should score a JSON file of readings."""
        path = tmp_path / "readings.json"
        path.write_text(json.dumps([r.to_dict() for r in scenario_readings]))

        result = score_readings(str(path), AppConfig())

        assert result.score == 57
        assert result.tier == SentimentTier.NEUTRAL

    def test_zscore_report_from_file(self, tmp_path):
        """Should evaluate series from a JSON file."""
        path = tmp_path / "history.json"
        path.write_text(json.dumps({
            "VIX": {"history": [15, 16, 14, 15, 15], "current": 28},
        }))

        report = zscore_report(str(path), AppConfig())

        assert report.extreme_indicators == ["VIX"]
        assert set(report.unavailable) == {"DXY", "M2"}


class TestMain:
    """Test the command line entry point."""

    def _run(self, monkeypatch, tmp_path, *args):
        monkeypatch.setattr(
            sys, "argv", ["riskpulse", "--config", str(tmp_path / "missing.yaml"), *args]
        )
        main()

    def test_score_without_readings(self, monkeypatch, tmp_path, capsys):
        """Should report the score as unavailable and exit 1."""
        path = tmp_path / "readings.json"
        path.write_text("[]")

        with pytest.raises(SystemExit) as exc_info:
            self._run(monkeypatch, tmp_path, "score", "--readings", str(path))

        assert exc_info.value.code == 1
        assert "Score unavailable" in capsys.readouterr().err

    def test_score_prints_json(self, monkeypatch, tmp_path, capsys, scenario_readings):
        """Should print the composite score as JSON."""
        path = tmp_path / "readings.json"
        path.write_text(json.dumps([r.to_dict() for r in scenario_readings]))

        self._run(monkeypatch, tmp_path, "score", "--readings", str(path))

        output = json.loads(capsys.readouterr().out)
        assert output["score"] == 57
        assert output["tier"] == "Neutral"

    def test_score_with_unknown_indicator(self, monkeypatch, tmp_path, capsys):
        """Should exit 1 for readings without a known weight."""
        path = tmp_path / "readings.json"
        path.write_text(json.dumps([{"name": "made_up", "value": 0.5}]))

        with pytest.raises(SystemExit) as exc_info:
            self._run(monkeypatch, tmp_path, "score", "--readings", str(path))

        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err
