"""Half-marathon plan generator: pace zones, periodization and weekly sessions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable

import pandas as pd

from timefmt import MAX_DURATION_SECONDS, format_pace, round_half_up


DAY_NAMES = ["一", "二", "三", "四", "五", "六", "日"]

BLOCK_ORDER = ["base", "build", "peak", "taper"]

BLOCKS = {
    "base": {"name": "Base", "desc": "有氧基礎、建立習慣"},
    "build": {"name": "Build", "desc": "強化乳酸閾值/間歇"},
    "peak": {"name": "Peak", "desc": "巔峰整合、特異性"},
    "taper": {"name": "Taper", "desc": "減量、保持銳度"},
}

PLAN_COLUMNS = ["week", "date", "day", "block", "slot", "label", "detail"]


class SlotType(str, Enum):
    EASY = "EASY"
    QUALITY1 = "QUALITY1"
    QUALITY2 = "QUALITY2"
    LONG = "LONG"
    OFF = "OFF"


# Monday first.
WEEK_TEMPLATE = [
    SlotType.EASY,
    SlotType.QUALITY1,
    SlotType.EASY,
    SlotType.QUALITY2,
    SlotType.EASY,
    SlotType.OFF,
    SlotType.LONG,
]


@dataclass(frozen=True)
class PaceSet:
    easy: float
    marathon: float
    threshold: float
    interval: float
    repeat: float
    long: float


@dataclass(frozen=True)
class DailySession:
    date: date
    label: str
    detail: str
    slot: SlotType | None = None


@dataclass(frozen=True)
class WeekPlan:
    week_index: int
    block: str
    sessions: tuple[DailySession, ...]


@dataclass(frozen=True)
class TrainingPlan:
    weeks: tuple[WeekPlan, ...]
    paces: PaceSet | None


@dataclass(frozen=True)
class PlanInputs:
    start_date: date
    weeks: int
    run_days_per_week: int
    sec5k: int | None = None
    hm_target: int | None = None


def block_info(key: str) -> dict[str, str]:
    if key not in BLOCKS:
        raise ValueError(f"Unknown periodization block: {key}")
    return BLOCKS[key]


def day_name(day: date) -> str:
    return DAY_NAMES[day.weekday()]


# ---------------------------------------------------------------------------
# Pace zones
# ---------------------------------------------------------------------------

def estimate_paces(sec5k: int | None) -> PaceSet | None:
    """Derive training paces (s/km) from a 5K time using fixed ratios.

    Returns ``None`` for a missing, zero or implausibly long (over 24 h) time.
    """

    if not sec5k or sec5k > MAX_DURATION_SECONDS:
        return None
    pace5k = sec5k / 5
    return PaceSet(
        easy=pace5k * 1.20,
        marathon=pace5k * 1.12,
        threshold=pace5k * 1.05,
        interval=pace5k * 0.95,
        repeat=pace5k * 0.90,
        long=pace5k * 1.18,
    )


# ---------------------------------------------------------------------------
# Periodization
# ---------------------------------------------------------------------------

def split_weeks(total_weeks: int) -> dict[str, int]:
    """Split ``total_weeks`` into Base/Build/Peak/Taper week counts.

    Every block gets at least two weeks where the total allows it. When the
    floors overshoot the total, the excess is taken from taper first, then
    peak, build and base, never going below zero. For 8-20 weeks this trims
    at most one taper week; shorter totals should be clamped by the caller.
    """

    t = total_weeks
    base = max(2, round_half_up(t * 0.35))
    build = max(2, round_half_up(t * 0.30))
    peak = max(2, round_half_up(t * 0.20))
    taper = max(2, t - (base + build + peak))
    counts = {"base": base, "build": build, "peak": peak, "taper": taper}

    diff = t - sum(counts.values())
    if diff > 0:
        counts["peak"] += diff
    excess = -diff
    for key in reversed(BLOCK_ORDER):
        if excess <= 0:
            break
        taken = min(counts[key], excess)
        counts[key] -= taken
        excess -= taken
    return counts


def assign_blocks(total_weeks: int) -> list[str]:
    allocation = split_weeks(total_weeks)
    assigned: list[str] = []
    for key in BLOCK_ORDER:
        assigned.extend([key] * allocation[key])
    return assigned


def summarize_blocks(weeks: Iterable[WeekPlan]) -> dict[str, tuple[int, int]]:
    ranges: dict[str, tuple[int, int]] = {}
    for week in weeks:
        first, _ = ranges.get(week.block, (week.week_index, week.week_index))
        ranges[week.block] = (first, week.week_index)
    return {key: ranges[key] for key in BLOCK_ORDER if key in ranges}


# ---------------------------------------------------------------------------
# Weekly sessions
# ---------------------------------------------------------------------------

def week_slots(run_days_per_week: int) -> list[SlotType]:
    """Apply the weekly run-day count to the fixed template.

    Only EASY slots are demoted to OFF; quality and long days always stay.
    """

    intensity_days = min(2, max(1, round_half_up(run_days_per_week / 3)))
    easy_days = run_days_per_week - intensity_days - 1

    slots: list[SlotType] = []
    kept_easy = 0
    for slot in WEEK_TEMPLATE:
        if slot is SlotType.EASY:
            if kept_easy >= easy_days:
                slot = SlotType.OFF
            else:
                kept_easy += 1
        slots.append(slot)
    return slots


def long_run_km(week_idx: int, block: str) -> int:
    km = 10 + min(12, math.floor(week_idx * 0.8))
    if block == "taper":
        km = max(12, math.floor(km * 0.7))
    return km


def easy_run_km(week_idx: int) -> int:
    return 6 + min(6, week_idx // 2)


def quality_workout(block: str, paces: PaceSet | None) -> str:
    if block == "base":
        t_pace = format_pace(paces.threshold) if paces else "T 配速"
        return f"T 閾值 4×5′ ({t_pace})，每次慢跑 2′ 回復"
    if block == "build":
        i_pace = format_pace(paces.interval) if paces else "I 配速"
        return f"I 間歇 6×800m ({i_pace})，每次 400m 慢跑回復"
    if block == "peak":
        m_pace = format_pace(paces.marathon) if paces else "M 配速"
        return f"特異性：2×5km @ {m_pace} ~ HM 目標配速，中間慢跑 1km"
    if block == "taper":
        t_pace = format_pace(paces.threshold) if paces else "T 配速"
        return f"減量：T 3×6′ ({t_pace})，總量降低，保持感覺"
    raise ValueError(f"Unknown periodization block: {block}")


def _session_for_slot(
    slot: SlotType, day: date, week_idx: int, block: str, paces: PaceSet | None
) -> DailySession:
    if slot is SlotType.OFF:
        return DailySession(day, "休息 / 交叉訓練", "可做核心/伸展", slot)
    if slot is SlotType.LONG:
        km = long_run_km(week_idx, block)
        pace = format_pace(paces.long) if paces else "舒適對話配速"
        return DailySession(day, f"長距離 {km}km", f"配速 ~ {pace}", slot)
    if slot in (SlotType.QUALITY1, SlotType.QUALITY2):
        return DailySession(day, "品質課", quality_workout(block, paces), slot)
    if slot is SlotType.EASY:
        km = easy_run_km(week_idx)
        pace = format_pace(paces.easy) if paces else "E 配速"
        return DailySession(day, f"Easy {km}km", f"放鬆 ~ {pace}", slot)
    raise ValueError(f"Unsupported slot type: {slot}")


def build_week(
    week_idx: int,
    block: str,
    start_date: date,
    run_days_per_week: int,
    paces: PaceSet | None,
) -> WeekPlan:
    block_info(block)
    week_start = start_date + timedelta(days=7 * week_idx)
    sessions: list[DailySession] = []
    for day_offset, slot in enumerate(week_slots(run_days_per_week)):
        current_date = week_start + timedelta(days=day_offset)
        sessions.append(_session_for_slot(slot, current_date, week_idx, block, paces))
    return WeekPlan(week_index=week_idx + 1, block=block, sessions=tuple(sessions))


def make_plan(
    start_date: date,
    weeks: int,
    run_days_per_week: int,
    sec5k: int | None = None,
    hm_target: int | None = None,
) -> TrainingPlan:
    """Generate the full plan.

    ``hm_target`` is accepted for parity with the saved inputs but does not
    influence paces or sessions; paces come from the 5K time alone.
    """

    paces = estimate_paces(sec5k)
    blocks = assign_blocks(weeks) if weeks > 0 else []
    plan = [
        build_week(idx, block, start_date, run_days_per_week, paces)
        for idx, block in enumerate(blocks)
    ]
    return TrainingPlan(weeks=tuple(plan), paces=paces)


def make_plan_from_inputs(inputs: PlanInputs) -> TrainingPlan:
    return make_plan(
        inputs.start_date,
        inputs.weeks,
        inputs.run_days_per_week,
        sec5k=inputs.sec5k,
        hm_target=inputs.hm_target,
    )


# ---------------------------------------------------------------------------
# Tables and JSON
# ---------------------------------------------------------------------------

def plan_to_dataframe(weeks: Iterable[WeekPlan]) -> pd.DataFrame:
    data_rows = []
    for week in weeks:
        for sess in week.sessions:
            data_rows.append(
                {
                    "week": week.week_index,
                    "date": sess.date,
                    "day": day_name(sess.date),
                    "block": week.block,
                    "slot": sess.slot.value if sess.slot else "",
                    "label": sess.label,
                    "detail": sess.detail,
                }
            )
    return pd.DataFrame(data_rows, columns=PLAN_COLUMNS)


def _coerce_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _coerce_slot(value) -> SlotType | None:
    if value is None or pd.isna(value) or value == "":
        return None
    return SlotType(value)


def plan_from_dataframe(df: pd.DataFrame) -> tuple[WeekPlan, ...]:
    """Rebuild weeks from a (possibly edited) plan table."""

    if df.empty:
        return ()
    weeks: list[WeekPlan] = []
    for week_no, rows in df.groupby("week", sort=True):
        sessions = tuple(
            DailySession(
                date=_coerce_date(row["date"]),
                label="" if pd.isna(row["label"]) else str(row["label"]),
                detail="" if pd.isna(row["detail"]) else str(row["detail"]),
                slot=_coerce_slot(row.get("slot")),
            )
            for _, row in rows.iterrows()
        )
        weeks.append(
            WeekPlan(week_index=int(week_no), block=str(rows["block"].iloc[0]), sessions=sessions)
        )
    return tuple(weeks)


def plan_to_records(weeks: Iterable[WeekPlan]) -> list[dict]:
    return [
        {
            "weekIndex": week.week_index,
            "block": week.block,
            "sessions": [
                {
                    "date": sess.date.isoformat(),
                    "label": sess.label,
                    "detail": sess.detail,
                    "slot": sess.slot.value if sess.slot else None,
                }
                for sess in week.sessions
            ],
        }
        for week in weeks
    ]


def plan_from_records(records) -> tuple[WeekPlan, ...]:
    """Parse the ``plan`` array of a saved snapshot.

    Raises ``ValueError`` when the payload does not have the expected shape.
    """

    if not isinstance(records, list):
        raise ValueError("plan must be a list of weeks")
    weeks: list[WeekPlan] = []
    try:
        for rec in records:
            block = str(rec["block"])
            block_info(block)
            sessions = tuple(
                DailySession(
                    date=_coerce_date(sess["date"]),
                    label=str(sess.get("label", "")),
                    detail=str(sess.get("detail", "")),
                    slot=_coerce_slot(sess.get("slot")),
                )
                for sess in rec["sessions"]
            )
            weeks.append(WeekPlan(week_index=int(rec["weekIndex"]), block=block, sessions=sessions))
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Malformed plan record: {exc}") from exc
    return tuple(weeks)
