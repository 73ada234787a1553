"""Run one auto-close sweep outside the web process (cron / systemd timer)."""

from __future__ import annotations

import argparse
import importlib
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.timeclock_bridge.timeclock_bridge.container import build_container
from src.timeclock_bridge.timeclock_bridge.main import configure_logging
from src.timeclock_bridge.timeclock_bridge.reconciliation.controller import run_autoclose


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--limit", type=int, default=int(getattr(settings, "SWEEP_LIMIT", 50)))
    args = parser.parse_args()

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    print(json.dumps(run_autoclose(build_container(settings), limit=args.limit)))


if __name__ == "__main__":
    main()
