"""
Run a push-notification dispatch from the command line (cron-friendly).

Usage:
    python backend/scripts/send_notifications.py review
    python backend/scripts/send_notifications.py work-progress
    python backend/scripts/send_notifications.py test
"""

import argparse
import json
import logging
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
project_root = backend_dir.parent

sys.path.insert(0, str(backend_dir))
sys.path.insert(0, str(project_root / "explorer_portal" / "src"))

from dotenv import load_dotenv

load_dotenv(project_root / ".env")
load_dotenv(backend_dir / ".env")

from lib.clients import ServiceNotConfigured
from lib.logger import get_logger, setup_logging
from dependencies import build_push_dispatcher

logger = get_logger("backend.scripts.send_notifications")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send portal push notifications")
    parser.add_argument("mode", choices=["review", "work-progress", "test"])
    parser.add_argument("--json", action="store_true", help="Print the full summary as JSON")
    args = parser.parse_args(argv)

    setup_logging(level=logging.INFO)

    try:
        dispatcher = build_push_dispatcher()
    except ServiceNotConfigured as e:
        logger.error("Cannot reach Supabase; nothing sent", error=e)
        return 1
    if dispatcher is None:
        logger.error("VAPID_PRIVATE_KEY is not set; nothing sent")
        return 1

    if args.mode == "review":
        summary = dispatcher.send_review_reminders()
    elif args.mode == "work-progress":
        summary = dispatcher.send_work_progress_reminders()
    else:
        summary = dispatcher.send_test()

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2, default=str))
    else:
        logger.section(f"{args.mode} dispatch", {"sent": summary.sent, "failed": summary.failed})

    return 0 if summary.failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
