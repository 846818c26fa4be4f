"""
CLI commands for RiskPulse.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

from riskpulse.anomaly.macro import MACRO_INDICATORS, MacroZScoreReport, evaluate_macro
from riskpulse.anomaly.zscore import ZScoreDetector
from riskpulse.config import AppConfig, load_config
from riskpulse.data.fetcher import MarketDataFetcher
from riskpulse.database.connection import Database
from riskpulse.database.models import RiskBasedReminder, RiskCondition
from riskpulse.database.repository import InvestmentRepository, ReminderRepository
from riskpulse.errors import InsufficientData, RiskPulseError
from riskpulse.main import ReminderNotFound, RiskPulseApp
from riskpulse.risk.providers import StaticRiskLevelProvider
from riskpulse.scoring.aggregator import ScoreAggregator
from riskpulse.scoring.types import CompositeScore, IndicatorReading, Signal
from riskpulse.scoring.feed import classify_signal


def add_reminder(
    db: Database,
    user_id: str,
    symbol: str,
    amount: float,
    threshold: float,
    condition: str,
    name: Optional[str] = None,
) -> RiskBasedReminder:
    """Add a new armed reminder."""
    repo = ReminderRepository(db)
    reminder = RiskBasedReminder(
        user_id=user_id,
        symbol=symbol,
        name=name or symbol.upper(),
        amount=amount,
        risk_threshold=threshold,
        risk_condition=RiskCondition(condition),
    )
    return repo.create(reminder)


def parse_risk_overrides(text: str) -> dict[str, float]:
    """Parse "BTC=25,ETH=72" into a score mapping."""
    scores = {}
    for pair in text.split(","):
        if not pair.strip():
            continue
        symbol, _, value = pair.partition("=")
        if not value:
            raise ValueError(f"Expected SYMBOL=SCORE, got: {pair}")
        scores[symbol.strip().upper()] = float(value)
    return scores


def load_readings(
    data: list[dict[str, Any]], weights: dict[str, float]
) -> list[IndicatorReading]:
    """
    Build readings from JSON objects.

    Each object needs ``name`` and ``value``; ``weight`` defaults to the
    configured catalog weight and ``signal`` to the value's classification.
    """
    readings = []
    for item in data:
        name = item["name"]
        value = float(item["value"])
        weight = float(item["weight"]) if "weight" in item else weights[name]
        signal = Signal(item["signal"]) if "signal" in item else classify_signal(value)
        readings.append(
            IndicatorReading(name=name, value=value, weight=weight, signal=signal)
        )
    return readings


def score_readings(path: str, config: AppConfig) -> CompositeScore:
    """Compute a composite score from a JSON file of readings."""
    with open(path) as f:
        data = json.load(f)
    readings = load_readings(data, config.scoring.weights)
    return ScoreAggregator(catalog=config.scoring.weights).compute_score(readings)


def zscore_report(path: Optional[str], config: AppConfig) -> MacroZScoreReport:
    """
    Compute macro z-scores from a JSON file or from Yahoo Finance.

    The JSON file maps indicator ids to ``{"history": [...], "current": x}``.
    """
    if path:
        with open(path) as f:
            data = json.load(f)
        series = {k: (v["history"], float(v["current"])) for k, v in data.items()}
    else:
        fetcher = MarketDataFetcher()
        series = fetcher.get_macro_snapshot(
            list(MACRO_INDICATORS), days=config.anomaly.history_days
        )

    detector = ZScoreDetector(
        extreme_threshold=config.anomaly.extreme_threshold,
        window=config.anomaly.window,
        min_history=config.anomaly.min_history,
    )
    return evaluate_macro(series, detector)


def _print_reminder(reminder: RiskBasedReminder) -> None:
    status = reminder.state.value
    if reminder.is_triggered:
        status += f" @ {reminder.last_triggered_risk_level:.1f}"
    print(
        f"{reminder.id}  {reminder.symbol:<6} {reminder.amount:>10.2f}  "
        f"{reminder.trigger_description:<22} [{status}]"
    )


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="RiskPulse CLI")
    parser.add_argument("--config", default="config.yaml", help="Config file path")
    parser.add_argument("--db", help="Database path (overrides config)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # Reminder commands
    reminders_parser = subparsers.add_parser("reminders", help="Reminder management")
    reminder_subparsers = reminders_parser.add_subparsers(dest="action")

    add_parser = reminder_subparsers.add_parser("add", help="Add reminder")
    add_parser.add_argument("--user", required=True, help="User ID")
    add_parser.add_argument("--symbol", required=True, help="Asset symbol")
    add_parser.add_argument("--name", help="Display name")
    add_parser.add_argument("--amount", type=float, required=True, help="Amount to invest")
    add_parser.add_argument(
        "--threshold", type=float, required=True, help="Risk threshold (0-100)"
    )
    add_parser.add_argument(
        "--condition", required=True, choices=[c.value for c in RiskCondition]
    )

    list_parser = reminder_subparsers.add_parser("list", help="List reminders")
    list_parser.add_argument("--user", help="User ID")

    for action in ("invest", "reset", "toggle", "delete", "history"):
        action_parser = reminder_subparsers.add_parser(action, help=f"{action.title()} reminder")
        action_parser.add_argument("--id", required=True, help="Reminder ID")

    # Evaluation
    check_parser = subparsers.add_parser("check", help="Evaluate reminders")
    check_parser.add_argument("--user", help="User ID")
    check_parser.add_argument("--risk", help="Risk scores, e.g. BTC=25,ETH=72")

    score_parser = subparsers.add_parser("score", help="Composite sentiment score")
    score_parser.add_argument("--readings", required=True, help="JSON file of readings")

    zscore_parser = subparsers.add_parser("zscore", help="Macro z-scores")
    zscore_parser.add_argument("--history", help="JSON file of series (default: fetch)")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_config(args.config) if Path(args.config).exists() else AppConfig()

    if args.command in ("score", "zscore"):
        try:
            if args.command == "score":
                result = score_readings(args.readings, config)
            else:
                result = zscore_report(args.history, config)
        except InsufficientData as e:
            print(f"Score unavailable: {e}", file=sys.stderr)
            sys.exit(1)
        except (RiskPulseError, KeyError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps(result.to_dict(), indent=2))
        return

    db = Database(args.db or config.database.path)
    db.initialize()
    app = RiskPulseApp.from_config(config, db)

    try:
        if args.command == "reminders":
            if args.action == "add":
                reminder = add_reminder(
                    db,
                    user_id=args.user,
                    symbol=args.symbol,
                    amount=args.amount,
                    threshold=args.threshold,
                    condition=args.condition,
                    name=args.name,
                )
                print(f"Created reminder with ID: {reminder.id}")
            elif args.action == "list":
                repo = ReminderRepository(db)
                reminders = repo.list_for_user(args.user) if args.user else repo.list_all()
                for reminder in reminders:
                    _print_reminder(reminder)
            elif args.action == "invest":
                investment = app.invest(args.id)
                print(
                    f"Invested {investment.amount:.2f} at {investment.price_at_purchase:.2f} "
                    f"(quantity {investment.quantity:.8f})"
                )
            elif args.action == "reset":
                _print_reminder(app.reset(args.id))
            elif args.action == "toggle":
                _print_reminder(app.toggle(args.id))
            elif args.action == "delete":
                app.delete(args.id)
                print(f"Deleted reminder {args.id}")
            elif args.action == "history":
                repo = InvestmentRepository(db)
                for inv in repo.list_for_reminder(args.id):
                    print(
                        f"{inv.purchase_date:%Y-%m-%d %H:%M}  {inv.amount:>10.2f}  "
                        f"@ {inv.price_at_purchase:.2f}  risk {inv.risk_level_at_purchase:.0f}%"
                    )
                print(f"Total invested: {repo.total_invested(args.id):.2f}")

        elif args.command == "check":
            if args.risk:
                app.provider = StaticRiskLevelProvider(
                    parse_risk_overrides(args.risk),
                    low_upper=config.risk.low_upper,
                    high_lower=config.risk.high_lower,
                )
            triggered = app.run_check(args.user)
            for reminder in triggered:
                _print_reminder(reminder)
            print(f"{len(triggered)} reminder(s) triggered")

    except (RiskPulseError, ReminderNotFound) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
