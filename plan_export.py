"""CSV export of a generated (or edited) plan."""

from __future__ import annotations

import csv
import logging
from typing import Iterable

import pandas as pd

from half_marathon_plan import WeekPlan, day_name

logger = logging.getLogger(__name__)

CSV_FILE_NAME = "half_marathon_plan.csv"
CSV_MIME = "text/csv"
CSV_COLUMNS = ["Week", "Date", "Day", "Block", "Label", "Detail"]


def plan_to_export_dataframe(weeks: Iterable[WeekPlan]) -> pd.DataFrame:
    rows = [
        {
            "Week": week.week_index,
            "Date": sess.date.strftime("%Y-%m-%d"),
            "Day": day_name(sess.date),
            "Block": week.block,
            "Label": sess.label,
            "Detail": sess.detail,
        }
        for week in weeks
        for sess in week.sessions
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def plan_to_csv(weeks: Iterable[WeekPlan]) -> str:
    """Render the plan as CSV; every field is quoted and inner quotes doubled."""

    df = plan_to_export_dataframe(weeks)
    logger.debug("Exporting %d plan rows to CSV", len(df))
    csv_data = df.to_csv(
        index=False,
        quoting=csv.QUOTE_ALL,
        doublequote=True,
        lineterminator="\n",
    )
    return csv_data.rstrip("\n")
