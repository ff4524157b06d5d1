from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_settings(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path} must be a mapping/object")

    jobs = data.get("jobs", {})
    if jobs is None:
        data["jobs"] = {}
    elif not isinstance(jobs, dict):
        raise ValueError(f"{path}: 'jobs' must be a mapping of job name -> config")

    return data


def job_settings(settings: dict[str, Any], name: str) -> dict[str, Any]:
    jobs = settings.get("jobs") or {}
    if name not in jobs:
        known = ", ".join(sorted(jobs)) or "none"
        raise ValueError(f"Unknown job {name!r} (configured: {known})")

    cfg = jobs[name]
    if not isinstance(cfg, dict):
        raise ValueError(f"Job {name!r} must be a mapping")
    return cfg
