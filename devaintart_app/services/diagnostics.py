# devaintart_app/services/diagnostics.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import os
import platform
import resource
import time
from datetime import datetime
from pathlib import Path

CGROUP = Path("/sys/fs/cgroup")
_STARTED = time.monotonic()
JOB_ID = "diag-heartbeat"


def _read(name: str) -> str | None:
    try:
        return (CGROUP / name).read_text(encoding="utf-8").strip()
    except OSError:
        return None


def parse_memory_events(raw: str | None) -> dict | None:
    if not raw:
        return None
    out = {"low": 0, "high": 0, "max": 0, "oom": 0, "oom_kill": 0, "oom_group_kill": 0}
    for line in raw.splitlines():
        parts = line.split(None, 1)
        if len(parts) != 2 or parts[0] not in out:
            continue
        try:
            out[parts[0]] = int(parts[1])
        except ValueError:
            continue
    return out


def memory_snapshot() -> dict:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss vem em KB no Linux
    return {"maxRssBytes": usage.ru_maxrss * 1024}


def log_diag(logger, event: str, **details) -> dict:
    payload = {
        "event": event,
        "ts": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
        "pid": os.getpid(),
        "uptimeSec": round(time.monotonic() - _STARTED),
        **details,
    }
    logger.info("[DIAG] %s", json.dumps(payload, default=str))
    return payload


def boot_details() -> dict:
    return {
        "python": platform.python_version(),
        "env": os.getenv("APP_ENV") or os.getenv("FLASK_ENV"),
        "railwayDeploymentId": os.getenv("RAILWAY_DEPLOYMENT_ID"),
        "railwayReplicaId": os.getenv("RAILWAY_REPLICA_ID"),
        "railwayRegion": os.getenv("RAILWAY_REPLICA_REGION"),
        "memoryLimitBytes": _read("memory.max"),
        "cpuMax": _read("cpu.max"),
        "memory": memory_snapshot(),
    }


def heartbeat_details() -> dict:
    return {
        "memory": memory_snapshot(),
        "memoryCurrentBytes": _read("memory.current"),
        "memoryPeakBytes": _read("memory.peak"),
        "memoryEvents": parse_memory_events(_read("memory.events")),
        "memoryPressure": _read("memory.pressure"),
        "cpuPressure": _read("cpu.pressure"),
    }


def init_diagnostics(app, scheduler):
    """Loga o boot e agenda o heartbeat periódico no scheduler da app."""
    log_diag(app.logger, "boot", **boot_details())
    interval = int(app.config.get("DIAG_INTERVAL_SECONDS", 60))
    if interval > 0 and scheduler.get_job(JOB_ID) is None:
        scheduler.add_job(
            lambda: log_diag(app.logger, "heartbeat", **heartbeat_details()),
            "interval", seconds=interval, id=JOB_ID, replace_existing=True,
        )
