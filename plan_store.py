"""Named plan snapshots kept in a key-value store."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from db import KeyValueStore
from half_marathon_plan import PlanInputs, WeekPlan, plan_from_records, plan_to_records
from timefmt import MAX_DURATION_SECONDS

logger = logging.getLogger(__name__)

INDEX_KEY = "hm-plans-keys"


@dataclass(frozen=True)
class SavedPlan:
    key: str
    inputs: PlanInputs
    weeks: tuple[WeekPlan, ...] | None


def default_plan_key(now: datetime | None = None) -> str:
    # Same shape as the browser app: ISO minute stamp without ':' and 'T'.
    now = now or datetime.now()
    return f"plan-{now.strftime('%Y-%m-%d%H%M')}"


def list_plan_keys(store: KeyValueStore) -> list[str]:
    raw = store.get(INDEX_KEY)
    if not raw:
        return []
    try:
        keys = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Plan index %s is not valid JSON; treating it as empty", INDEX_KEY)
        return []
    if not isinstance(keys, list):
        logger.warning("Plan index %s is not a list; treating it as empty", INDEX_KEY)
        return []
    return [str(k) for k in keys]


def _add_to_index(store: KeyValueStore, key: str) -> list[str]:
    keys = list(dict.fromkeys([*list_plan_keys(store), key]))
    store.set(INDEX_KEY, json.dumps(keys, ensure_ascii=False))
    return keys


def snapshot_payload(inputs: PlanInputs, weeks: Iterable[WeekPlan]) -> dict:
    return {
        "startDate": inputs.start_date.isoformat(),
        "weeks": inputs.weeks,
        "runDaysPerWeek": inputs.run_days_per_week,
        "sec5k": inputs.sec5k,
        "hmTarget": inputs.hm_target,
        "plan": plan_to_records(weeks),
    }


def save_plan(
    store: KeyValueStore,
    inputs: PlanInputs,
    weeks: Iterable[WeekPlan],
    key: str | None = None,
    now: datetime | None = None,
) -> str:
    """Persist a snapshot and register its key in the index. Returns the key."""

    key = (key or "").strip() or default_plan_key(now)
    payload = snapshot_payload(inputs, weeks)
    store.set(key, json.dumps(payload, ensure_ascii=False))
    _add_to_index(store, key)
    logger.info("Saved plan snapshot %s (%d weeks)", key, inputs.weeks)
    return key


def _optional_duration(value) -> int | None:
    if value is None:
        return None
    seconds = int(value)
    if seconds < 0 or seconds > MAX_DURATION_SECONDS:
        logger.warning("Dropping out-of-range stored time %s", seconds)
        return None
    return seconds


def _inputs_from_payload(payload: dict) -> PlanInputs:
    return PlanInputs(
        start_date=date.fromisoformat(str(payload["startDate"])[:10]),
        weeks=int(payload["weeks"]),
        run_days_per_week=int(payload["runDaysPerWeek"]),
        sec5k=_optional_duration(payload.get("sec5k")),
        hm_target=_optional_duration(payload.get("hmTarget")),
    )


def load_plan(store: KeyValueStore, key: str) -> SavedPlan | None:
    """Read a snapshot back; ``None`` when it is missing or unreadable."""

    raw = store.get(key)
    if not raw:
        logger.warning("No plan snapshot stored under %s", key)
        return None
    try:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("snapshot is not a JSON object")
        inputs = _inputs_from_payload(payload)
    except (ValueError, KeyError, TypeError, OverflowError) as exc:
        logger.warning("Ignoring corrupt plan snapshot %s: %s", key, exc)
        return None

    weeks = None
    if "plan" in payload:
        try:
            weeks = plan_from_records(payload["plan"])
        except ValueError as exc:
            logger.warning("Stored plan for %s is unreadable, regenerating: %s", key, exc)
    logger.info("Loaded plan snapshot %s", key)
    return SavedPlan(key=key, inputs=inputs, weeks=weeks)
