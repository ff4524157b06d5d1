from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from pathlib import Path

from scraper.base import HttpConfig
from scraper.fetch import Fetcher
from scraper.jobs import run_job
from utils.jsonio import write_json, write_jsonl
from utils.settings import job_settings, load_settings


def main() -> int:
    ap = argparse.ArgumentParser(description="Run configured scrape jobs and write results")
    ap.add_argument(
        "--job",
        default="",
        help="Run a single job from the settings 'jobs' section (default: all jobs).",
    )
    ap.add_argument("--settings", default="config/settings.yaml")
    ap.add_argument("--out", default="data", help="Output root")
    ap.add_argument("--debug", action="store_true")

    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings(args.settings)
    fetcher = Fetcher(HttpConfig.from_settings(settings))

    job_names: list[str]
    if args.job.strip():
        job_names = [args.job.strip()]
    else:
        job_names = list(settings.get("jobs") or {})

    started_at = datetime.now(timezone.utc).isoformat()
    latest_dir = Path(args.out) / "latest"

    jobs_summary = []
    for name in job_names:
        result = run_job(name, job_settings(settings, name), fetcher)
        path = latest_dir / f"{name}.jsonl"
        rows = write_jsonl(path, result.rows)
        jobs_summary.append(
            {"job": name, "mode": result.mode, "rows": rows, "path": path.as_posix()}
        )
        print(f"Wrote {rows} rows to {path}")

    write_json(
        latest_dir / "summary.json",
        {
            "started_at_utc": started_at,
            "finished_at_utc": datetime.now(timezone.utc).isoformat(),
            "jobs": jobs_summary,
        },
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
