"""Monthly leave accrual job.

Run once per period from an external scheduler (cron, systemd timer):

    python scripts/run_accrual.py --period 2024-03

The period is claimed in ``accrual_runs`` first, so a second run for the
same period exits without touching any balance.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from datetime import date, datetime
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_engine.attendance_engine.container import build_container
from src.attendance_engine.attendance_engine.core.settings import EngineSettings

logger = logging.getLogger("run_accrual")


def _parse_period(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise argparse.ArgumentTypeError("period must be YYYY-MM")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Add one period of leave accrual to every accruing balance.")
    parser.add_argument("--period", type=_parse_period, default=date.today().replace(day=1))
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper())

    engine_settings = EngineSettings.from_module(settings)
    container = build_container(db_config=settings.DB_CONFIG, settings=engine_settings)
    runs = container.accrual_runs_repo

    period_key = args.period.strftime("%Y-%m")
    if not runs.claim(period_key):
        logger.warning("accrual for %s already ran; nothing to do", period_key)
        return 1

    try:
        updated = container.leave_ledger.accrue(args.period)
    except Exception:
        runs.release(period_key)
        raise
    runs.finish(period_key, updated)
    print(f"OK: accrual {period_key} -> {updated} balance(s) updated")
    return 0


if __name__ == "__main__":
    sys.exit(main())
