# rotation_scheduler/export.py
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .fitness import FitnessResult
from .model import DAYS, Schedule, SchoolClass


def schedule_to_dataframe(schedule: Schedule, classes: Sequence[SchoolClass]) -> pd.DataFrame:
    names = {c.id: c.name for c in classes}
    order = {d: i for i, d in enumerate(DAYS)}
    rows = []
    for a in schedule.assignments:
        slot = a.time_slot
        rows.append(
            {
                "class_id": a.class_id,
                "name": names.get(a.class_id, a.class_id),
                "day": slot.day,
                "period": slot.period,
                "date": slot.date.isoformat() if slot.date else "",
                "locked": slot.is_fixed,
            }
        )
    df = pd.DataFrame(rows, columns=["class_id", "name", "day", "period", "date", "locked"])
    if df.empty:
        return df
    df["_d"] = df["day"].map(lambda d: order.get(d, len(order)))
    return df.sort_values(["_d", "period", "class_id"]).drop(columns="_d").reset_index(drop=True)


def schedule_grid(schedule: Schedule, classes: Sequence[SchoolClass], periods_per_day: int = 8) -> pd.DataFrame:
    """Vista semanal: filas = periodos, columnas = días."""
    names = {c.id: c.name for c in classes}
    grid = pd.DataFrame("", index=range(1, periods_per_day + 1), columns=list(DAYS))
    for a in schedule.assignments:
        day, period = a.time_slot.day, a.time_slot.period
        if day not in grid.columns or period not in grid.index:
            continue
        cell = grid.at[period, day]
        label = names.get(a.class_id, a.class_id)
        grid.at[period, day] = f"{cell} / {label}" if cell else label
    grid.index.name = "period"
    return grid


def violations_to_dataframe(result: FitnessResult) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "tipo": v.type.value,
                "restriccion": v.constraint_id,
                "clase": v.class_id,
                "detalle": v.description,
            }
            for v in result.violations
        ],
        columns=["tipo", "restriccion", "clase", "detalle"],
    )


def export_outputs(
    schedule: Schedule,
    classes: Sequence[SchoolClass],
    out_dir: Path,
    history: Optional[List[Dict]] = None,
    metrics: Optional[Dict] = None,
    result: Optional[FitnessResult] = None,
) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    schedule_to_dataframe(schedule, classes).to_csv(out_dir / "schedule.csv", index=False)
    if history:
        pd.DataFrame(history).to_csv(out_dir / "history.csv", index=False)
    if metrics:
        pd.DataFrame([metrics]).to_csv(out_dir / "metrics.csv", index=False)
    if result is not None:
        violations_to_dataframe(result).to_csv(out_dir / "violations.csv", index=False)
