"""
Run one insight report from the persisted configuration.
"""

from __future__ import annotations

import argparse
import json
import logging

from app.config import get_report_storage_settings
from app.repositories.state_repository import JsonStateStore
from app.scheduler.jobs import build_report_scheduler
from app.services.errors import ReportRunError


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate an insight report now.")
    parser.add_argument(
        "--data-dir",
        dest="data_dir",
        default=None,
        help="Directory holding config.json and status.json (defaults to DATA_DIR).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    state_store = JsonStateStore(args.data_dir or get_report_storage_settings().data_dir)
    state_store.load()
    report_scheduler = build_report_scheduler(state_store)

    try:
        result = report_scheduler.run_now()
    except ReportRunError as exc:
        print(json.dumps({"ok": False, "error": str(exc)}, indent=2))
        return 1

    payload = {
        "ok": True,
        "url": result.html_url,
        "pdfUrl": result.pdf_url,
        "emailed": result.emailed,
        "chartsRendered": result.charts_rendered,
        "rows": result.row_count,
        "totals": result.totals,
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
