# app.py: Half-marathon planner (Streamlit)
# ----------------------------------------------------------------------------
# Features:
# - 5K time -> six pace zones (E / M / T / I / R / Long)
# - Base -> Build -> Peak -> Taper periodization over 8-20 weeks
# - Weekly schedule with easy, quality, long and rest days
# - Editable plan table (label/detail) that feeds save and export
# - Named snapshots in the key-value store (SQL `meta` table)
# - CSV export (half_marathon_plan.csv)
# ----------------------------------------------------------------------------

import logging
import os
from datetime import date

import pandas as pd
import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

import db
import half_marathon_plan as hmp
import plan_export
import plan_store
from timefmt import format_duration, format_pace, parse_duration

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_5K = "25:00"
DEFAULT_HM = "1:30:00"
DEFAULT_WEEKS = 12
DEFAULT_RUN_DAYS = 5
MIN_WEEKS, MAX_WEEKS = 8, 20
MIN_RUN_DAYS, MAX_RUN_DAYS = 3, 6

PACE_ROWS = [
    ("Easy", "easy"),
    ("Long", "long"),
    ("Threshold (T)", "threshold"),
    ("Interval (I)", "interval"),
    ("Marathon (M)", "marathon"),
    ("Repeat (R)", "repeat"),
]


# ----------------------------------------------------------------------------
# State
# ----------------------------------------------------------------------------

def init_state():
    defaults = {
        "sec5k": parse_duration(DEFAULT_5K),
        "hm_target": parse_duration(DEFAULT_HM),
        "sec5k_text": DEFAULT_5K,
        "hm_target_text": DEFAULT_HM,
        "weeks": DEFAULT_WEEKS,
        "run_days": DEFAULT_RUN_DAYS,
        "start_date": date.today(),
        "saved_key": "",
        "loaded_plan": None,
        "loaded_key": None,
        "time_warnings": {},
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def get_store() -> db.KeyValueStore:
    if "plan_store" in st.session_state:
        return st.session_state["plan_store"]
    try:
        store = db.open_store()
    except db.DatabaseConfigError as exc:
        logger.warning("Database not configured, plans are kept for this session only: %s", exc)
        st.session_state["store_notice"] = (
            "DATABASE_URL is not configured; saved plans only last for this session."
        )
        store = db.MemoryKeyValueStore()
    except SQLAlchemyError as exc:
        logger.exception("Could not open the plan database")
        st.session_state["store_notice"] = f"Could not open the plan database: {exc}"
        store = db.MemoryKeyValueStore()
    st.session_state["plan_store"] = store
    return store


def _on_time_change(field: str):
    text_value = st.session_state.get(f"{field}_text", "")
    seconds = parse_duration(text_value)
    warnings = dict(st.session_state.get("time_warnings", {}))
    if seconds is None:
        # Keep the previous valid value.
        warnings[field] = f"Could not read '{text_value}', keeping {format_duration(st.session_state[field])}."
    else:
        st.session_state[field] = seconds
        warnings.pop(field, None)
    st.session_state["time_warnings"] = warnings


def current_inputs() -> hmp.PlanInputs:
    return hmp.PlanInputs(
        start_date=st.session_state["start_date"],
        weeks=int(st.session_state["weeks"]),
        run_days_per_week=int(st.session_state["run_days"]),
        sec5k=st.session_state["sec5k"],
        hm_target=st.session_state["hm_target"],
    )


def _load_snapshot(store: db.KeyValueStore, key: str):
    saved = plan_store.load_plan(store, key)
    if saved is None:
        st.session_state["load_error"] = f"Plan '{key}' could not be loaded."
        return
    inputs = saved.inputs
    st.session_state["start_date"] = inputs.start_date
    st.session_state["weeks"] = min(MAX_WEEKS, max(MIN_WEEKS, inputs.weeks))
    st.session_state["run_days"] = min(MAX_RUN_DAYS, max(MIN_RUN_DAYS, inputs.run_days_per_week))
    st.session_state["sec5k"] = inputs.sec5k
    st.session_state["hm_target"] = inputs.hm_target
    st.session_state["sec5k_text"] = format_duration(inputs.sec5k)
    st.session_state["hm_target_text"] = format_duration(inputs.hm_target)
    st.session_state["saved_key"] = key
    st.session_state["loaded_key"] = key
    st.session_state["time_warnings"] = {}
    st.session_state["loaded_plan"] = (inputs, saved.weeks) if saved.weeks else None


def _save_snapshot(store: db.KeyValueStore, inputs: hmp.PlanInputs, weeks: tuple):
    try:
        key = plan_store.save_plan(store, inputs, weeks, key=st.session_state.get("saved_key"))
    except SQLAlchemyError as exc:
        logger.exception("Saving plan failed")
        st.session_state["load_error"] = f"Could not save the plan: {exc}"
        return
    st.session_state["saved_key"] = key
    st.session_state["loaded_plan"] = (inputs, weeks)
    st.session_state["save_message"] = f"Saved as {key}"


# ----------------------------------------------------------------------------
# Render
# ----------------------------------------------------------------------------

def render_inputs():
    with st.sidebar:
        st.header("Plan inputs")
        st.text_input(
            "目前 5K 成績 (mm:ss)",
            key="sec5k_text",
            placeholder="例如 24:30",
            on_change=_on_time_change,
            args=("sec5k",),
        )
        st.text_input(
            "目標 半馬 (hh:mm:ss)",
            key="hm_target_text",
            placeholder="例如 1:45:00",
            on_change=_on_time_change,
            args=("hm_target",),
            help="Stored with the plan; paces come from the 5K time only.",
        )
        for message in st.session_state.get("time_warnings", {}).values():
            st.warning(message)

        st.slider("總週數", MIN_WEEKS, MAX_WEEKS, key="weeks")
        st.slider("每週跑幾天", MIN_RUN_DAYS, MAX_RUN_DAYS, key="run_days")
        st.date_input("開始日期", key="start_date")


def render_pace_card(paces: hmp.PaceSet | None):
    st.subheader("估算配速（僅供參考）")
    if paces is None:
        st.info("請提供有效的 5K 成績以估配速")
        return
    cols = st.columns(3)
    for idx, (label, attr) in enumerate(PACE_ROWS):
        cols[idx % 3].metric(label, format_pace(getattr(paces, attr)))
    st.caption("* 以上配速為粗略估算，請依個人體感調整；不適時請減量、休息。")


def render_block_summary(weeks):
    ranges = hmp.summarize_blocks(weeks)
    cols = st.columns(max(1, len(ranges)))
    for col, (key, (first, last)) in zip(cols, ranges.items()):
        info = hmp.block_info(key)
        col.metric(info["name"], f"W{first}–W{last}")
        col.caption(info["desc"])


def render_plan_editor(weeks, editor_key: str) -> tuple:
    plan_df = hmp.plan_to_dataframe(weeks)
    edited_df = st.data_editor(
        plan_df,
        width="stretch",
        hide_index=True,
        disabled=["week", "date", "day", "block", "slot"],
        column_config={
            "week": st.column_config.NumberColumn("週", format="%d"),
            "date": st.column_config.DateColumn("日期"),
            "day": "星期",
            "block": "期",
            "slot": None,
            "label": st.column_config.TextColumn("課表"),
            "detail": st.column_config.TextColumn("說明", width="large"),
        },
        height=560,
        key=editor_key,
    )
    return hmp.plan_from_dataframe(pd.DataFrame(edited_df))


def render_save_load(store: db.KeyValueStore, inputs: hmp.PlanInputs, weeks):
    st.subheader("儲存 / 載入")
    notice = st.session_state.pop("store_notice", None)
    if notice:
        st.warning(notice)
    load_error = st.session_state.pop("load_error", None)
    if load_error:
        st.error(load_error)

    col_key, col_save, col_csv = st.columns([3, 1, 1])
    col_key.text_input("儲存鍵名（可自訂）", key="saved_key", label_visibility="collapsed",
                       placeholder="儲存鍵名（可自訂）")
    col_save.button(
        "儲存",
        width="stretch",
        key="save_plan_btn",
        on_click=_save_snapshot,
        args=(store, inputs, tuple(weeks)),
    )
    save_message = st.session_state.pop("save_message", None)
    if save_message:
        st.success(save_message)

    col_csv.download_button(
        "匯出 CSV",
        data=plan_export.plan_to_csv(weeks).encode("utf-8"),
        file_name=plan_export.CSV_FILE_NAME,
        mime=plan_export.CSV_MIME,
        width="stretch",
        key="download_plan_csv",
    )

    saved_keys = plan_store.list_plan_keys(store)
    if saved_keys:
        cols = st.columns(min(4, len(saved_keys)))
        for idx, key in enumerate(saved_keys):
            cols[idx % len(cols)].button(
                f"載入：{key}",
                key=f"load_plan_{idx}",
                on_click=_load_snapshot,
                args=(store, key),
            )


def main():
    st.set_page_config(page_title="半馬訓練課表小幫手", page_icon="🏃", layout="wide")
    init_state()
    store = get_store()

    st.title("半馬訓練課表小幫手 🏃")
    st.caption("依 5K 成績與目標，自動產生期化課表（Base→Build→Peak→Taper）")

    render_inputs()
    inputs = current_inputs()
    plan = hmp.make_plan_from_inputs(inputs)

    weeks = plan.weeks
    loaded = st.session_state.get("loaded_plan")
    if loaded and loaded[0] == inputs:
        weeks = loaded[1]

    render_pace_card(plan.paces)
    st.markdown("---")
    render_block_summary(weeks)
    editor_key = f"plan_editor_{hash((inputs, st.session_state.get('loaded_key')))}"
    edited_weeks = render_plan_editor(weeks, editor_key)
    st.markdown("---")
    render_save_load(store, inputs, edited_weeks)

    st.caption("ⓘ 提醒：請依身體狀況彈性微調，必要時諮詢專業教練/醫師。")


if __name__ == "__main__":
    main()
