"""Run status for solve/generate calls plus a timestamped attempt log.

Callers poll :func:`snapshot`; the orchestrator drives the setters.  Phase and
attempt changes are written to the attempt log as start/finish pairs with
durations, so a slow generator run can be read back attempt by attempt.
"""
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from config import CFG

PROGRESS_LOCK = threading.Lock()

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _attempt_log_file() -> Path:
    if CFG.ATTEMPT_LOG:
        return Path(CFG.ATTEMPT_LOG)
    return Path(__file__).resolve().parent / "logs" / "solver_attempts.log"


def _build_logger() -> logging.Logger:
    logger = logging.getLogger("pipe_puzzle.attempts")
    if logger.handlers:
        return logger
    target = _attempt_log_file()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, encoding="utf-8")
    except OSError:
        # no writable log location: run without an attempt log
        return logger
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


ATTEMPT_LOGGER = _build_logger()


def _seconds(value: Optional[float]) -> Optional[str]:
    return None if value is None else f"{max(0.0, value):.2f}s"


def _emit_log(event: str, **fields: Any) -> None:
    if not ATTEMPT_LOGGER.handlers:
        return
    parts = [f"{k}={v}" for k, v in fields.items() if v is not None and v != ""]
    try:
        if parts:
            ATTEMPT_LOGGER.info("%s | %s", event, " ".join(parts))
        else:
            ATTEMPT_LOGGER.info("%s", event)
    except Exception:
        # a broken log handler must not fail the run
        pass


# ---------- span bookkeeping (guarded by PROGRESS_LOCK) ----------

# kind -> (label, started_at); kinds are "run", "phase" and "attempt"
_SPANS: Dict[str, Tuple[str, Optional[float]]] = {
    "run": ("", None),
    "phase": ("", None),
    "attempt": ("", None),
}


def _span_label(kind: str) -> str:
    return _SPANS[kind][0]


def _close_attempt_locked(now: float, reason: str) -> None:
    label, started = _SPANS["attempt"]
    if not label:
        return
    _emit_log(
        "Attempt finished",
        phase=_span_label("phase"),
        attempt=label,
        duration=_seconds(now - started) if started is not None else None,
        reason=reason,
    )
    _SPANS["attempt"] = ("", None)


def _enter_phase_locked(label: str) -> None:
    previous, started = _SPANS["phase"]
    if label == previous:
        return
    now = time.time()
    _close_attempt_locked(now, "phase_change")
    if previous and started is not None:
        _emit_log("Phase finished", phase=previous, duration=_seconds(now - started))
    _SPANS["phase"] = (label, now)
    if label:
        _emit_log("Phase started", phase=label)


def _enter_attempt_locked(label: str) -> None:
    if label == _span_label("attempt"):
        return
    now = time.time()
    _close_attempt_locked(now, "switch")
    if label:
        _SPANS["attempt"] = (label, now)
        _emit_log("Attempt started", phase=_span_label("phase"), attempt=label)


def log_attempt_detail(event: str, **fields: Any) -> None:
    """One free-form line in the attempt log, tagged with the current phase and attempt."""
    with PROGRESS_LOCK:
        phase, attempt = _span_label("phase"), _span_label("attempt")
    _emit_log(event, phase=phase, attempt=attempt, **fields)


# ---------- polled state ----------

def _fresh_state(run_id: int) -> Dict[str, Any]:
    return {
        "status": "Idle",        # Idle | Solving | Generating | Solved | Error
        "phase": "",             # solve | generate | derive
        "attempt": "",           # e.g. "3/50"
        "strategy": "",          # backtrack | cp_sat | structured | random_walk
        "nodes": 0,
        "solutions": 0,
        "elapsed_start": None,
        "elapsed": 0.0,
        "message": "",
        "done": False,
        "ok": None,
        "run_id": run_id,
    }


PROGRESS: Dict[str, Any] = _fresh_state(0)


def _refresh_elapsed_locked() -> None:
    t0 = PROGRESS["elapsed_start"]
    if t0 is not None:
        PROGRESS["elapsed"] = time.time() - t0


def _fmt_elapsed(seconds: float) -> str:
    total = int(max(0.0, seconds))
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


_RUN_COUNTER = [0]


def _bump_run_id() -> int:
    _RUN_COUNTER[0] += 1
    return _RUN_COUNTER[0]


def reset() -> None:
    with PROGRESS_LOCK:
        _close_attempt_locked(time.time(), "reset")
        PROGRESS.clear()
        PROGRESS.update(_fresh_state(_bump_run_id()))
        for kind in _SPANS:
            _SPANS[kind] = ("", None)
        _emit_log("Progress reset")


def start_timer() -> None:
    with PROGRESS_LOCK:
        now = time.time()
        PROGRESS["elapsed_start"] = now
        PROGRESS["elapsed"] = 0.0
        _SPANS["run"] = ("run", now)
        _emit_log("Run timer started")


def set_status(value: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["status"] = str(value)


def set_phase(value: Any) -> None:
    label = "" if value is None else str(value)
    with PROGRESS_LOCK:
        PROGRESS["phase"] = label
        _enter_phase_locked(label)


def set_attempt(value: Any) -> None:
    label = "" if value is None else str(value)
    with PROGRESS_LOCK:
        PROGRESS["attempt"] = label
        _enter_attempt_locked(label)


def set_strategy(value: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["strategy"] = "" if value is None else str(value)


def set_counts(nodes: Any = None, solutions: Any = None) -> None:
    """Search counters of the current run; negatives and junk read as 0."""
    with PROGRESS_LOCK:
        for key, raw in (("nodes", nodes), ("solutions", solutions)):
            if raw is None:
                continue
            try:
                PROGRESS[key] = max(0, int(raw))
            except (TypeError, ValueError):
                PROGRESS[key] = 0
        _refresh_elapsed_locked()


def set_message(message: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["message"] = "" if message is None else str(message)


def set_done(ok: Any = None, *, message: Any = None) -> None:
    """Mark the run complete.

    ``ok`` picks the final status (Solved/Error).  Without it a run that never
    left Idle counts as solved and any other status is kept.
    """
    with PROGRESS_LOCK:
        _refresh_elapsed_locked()
        now = time.time()
        if ok is not None:
            PROGRESS["ok"] = bool(ok)
            PROGRESS["status"] = "Solved" if ok else "Error"
        elif PROGRESS["status"] in ("", "Idle"):
            PROGRESS["ok"] = True
            PROGRESS["status"] = "Solved"
        if message is not None:
            PROGRESS["message"] = str(message)
        PROGRESS["done"] = True

        _close_attempt_locked(now, "run_complete")
        _, run_started = _SPANS["run"]
        _SPANS["run"] = ("", None)
        _emit_log(
            "Run finished",
            status=PROGRESS["status"],
            ok=PROGRESS["ok"],
            duration=_seconds(now - run_started) if run_started is not None else None,
            nodes=PROGRESS["nodes"],
            solutions=PROGRESS["solutions"],
            message=PROGRESS["message"],
        )


def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _refresh_elapsed_locked()
        snap = {k: v for k, v in PROGRESS.items() if k != "elapsed_start"}
        snap["elapsed_str"] = _fmt_elapsed(PROGRESS["elapsed"])
        return snap
