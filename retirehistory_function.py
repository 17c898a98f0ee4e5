# retirehistory_function.py

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import azure.functions as func

from config_utils import ConfigError, HistoryConfig, RETENTION_MODES
from cosmos_utils import (
    get_container,
    get_stale_threads,
    get_related_docs,
    get_stale_docs,
    mark_deleted,
)

logger = logging.getLogger()
logger.setLevel(logging.INFO)

SECONDS_PER_DAY = 24 * 60 * 60
RETIRE_SCHEDULE = "0 0 2 * * *"  # daily at 02:00

@dataclass
class SweepResult:
    mode: str
    cutoff: int
    dry_run: bool = False
    candidates: int = 0
    retired: int = 0
    skipped_threads: int = 0
    failures: int = 0

def retention_cutoff(retention_days: int, now: Optional[float] = None) -> int:
    now = int(time.time()) if now is None else int(now)
    return now - retention_days * SECONDS_PER_DAY

def is_stale(doc: Dict[str, Any], cutoff: int) -> bool:
    ts = doc.get("_ts")
    return ts is not None and ts < cutoff

def plan_thread_retirement(
    thread: Dict[str, Any],
    related: List[Dict[str, Any]],
    cutoff: int,
) -> Optional[List[Dict[str, Any]]]:
    """Records to retire for one thread, children first and the thread last.

    None means at least one child is still fresh and the thread waits for a
    later pass.
    """
    if not related:
        return [thread]
    if all(is_stale(doc, cutoff) for doc in related):
        return list(related) + [thread]
    return None

def _retire(container, doc: Dict[str, Any], kind: str, result: SweepResult) -> bool:
    if result.dry_run:
        logger.info("[dry-run] would set isDeleted=true for %s id=%s", kind, doc.get("id"))
        result.retired += 1
        return True
    if mark_deleted(container, doc):
        logger.info("Set isDeleted=true for %s id=%s", kind, doc.get("id"))
        result.retired += 1
        return True
    result.failures += 1
    return False

def _sweep_threads(container, result: SweepResult) -> None:
    threads = get_stale_threads(container, result.cutoff)
    result.candidates = len(threads)
    logger.info("Found %d CHAT_THREADs older than retention.", len(threads))

    for thread in threads:
        related = get_related_docs(container, thread["id"])
        plan = plan_thread_retirement(thread, related, result.cutoff)
        if plan is None:
            result.skipped_threads += 1
            logger.info("Not all related docs for thread id=%s are old enough. Skipping.", thread["id"])
            continue
        if not related:
            logger.info("No related docs for thread id=%s", thread["id"])

        children_ok = True
        for doc in plan[:-1]:
            children_ok = _retire(container, doc, "document", result) and children_ok
        if not children_ok:
            # thread stays a candidate so the failed children are retried
            logger.warning("Leaving thread id=%s active, some related docs failed to update", thread["id"])
            continue
        _retire(container, thread, "thread", result)

def _sweep_flat(container, result: SweepResult) -> None:
    docs = get_stale_docs(container, result.cutoff)
    result.candidates = len(docs)
    logger.info("Found %d documents older than retention.", len(docs))
    for doc in docs:
        _retire(container, doc, "document", result)

def sweep_history(
    config: HistoryConfig,
    *,
    container=None,
    now: Optional[float] = None,
    mode: Optional[str] = None,
) -> Optional[SweepResult]:
    """Soft-deletes history older than the retention window.

    Thread mode retires a stale thread together with its related documents
    only when every one of them is stale too. Flat mode retires any stale
    record on its own. Returns None when the store is not configured.
    """
    mode = mode or config.retention_mode
    if mode not in RETENTION_MODES:
        raise ValueError(f"unknown retention mode: {mode!r}")

    if container is None:
        try:
            container = get_container(config)
        except ConfigError as e:
            logger.error("Retention sweep not started: %s", e)
            return None

    logger.info("History retention set to %d days (mode=%s).", config.retention_days, mode)
    result = SweepResult(
        mode=mode,
        cutoff=retention_cutoff(config.retention_days, now),
        dry_run=config.dry_run,
    )
    if mode == "thread":
        _sweep_threads(container, result)
    else:
        _sweep_flat(container, result)

    logger.info(
        "retirehistorydocs done: mode=%s candidates=%d retired=%d skipped=%d failures=%d dry_run=%s",
        result.mode, result.candidates, result.retired, result.skipped_threads, result.failures, result.dry_run,
    )
    return result

def build_blueprint(config: HistoryConfig) -> func.Blueprint:
    bp = func.Blueprint()

    @bp.function_name(name="retirehistorydocs")
    @bp.timer_trigger(arg_name="mytimer", schedule=RETIRE_SCHEDULE, run_on_startup=False, use_monitor=True)
    def retirehistorydocs(mytimer: func.TimerRequest) -> None:
        if mytimer.past_due:
            logger.info("The timer is past due!")
        sweep_history(config)

    return bp
