# rotation_scheduler/data_loader.py
import random
from typing import List, Optional

import pandas as pd

from .model import DAYS, PERIODS_PER_DAY, SchoolClass, TimeSlot
from .timeslots import parse_time_slot


def _parse_slots(cell, periods_per_day: int = PERIODS_PER_DAY) -> List[TimeSlot]:
    if cell is None or (isinstance(cell, float) and pd.isna(cell)):
        return []
    text = str(cell).strip()
    if not text:
        return []
    return [parse_time_slot(part, periods_per_day) for part in text.split(";") if part.strip()]


def classes_from_dataframe(df: pd.DataFrame, periods_per_day: int = PERIODS_PER_DAY) -> List[SchoolClass]:
    """
    Columnas: id, name, conflicts (obligatorias); preferred, not_preferred
    (opcionales). Los slots van como "Monday:3" separados por ";".
    """
    missing = {"id", "name"} - set(df.columns)
    if missing:
        raise ValueError(f"Faltan columnas en el CSV de clases: {sorted(missing)}")

    classes: List[SchoolClass] = []
    for _, r in df.iterrows():
        classes.append(
            SchoolClass(
                id=str(r["id"]).strip(),
                name=str(r["name"]).strip(),
                conflicts=_parse_slots(r.get("conflicts"), periods_per_day),
                preferred=_parse_slots(r.get("preferred"), periods_per_day),
                not_preferred=_parse_slots(r.get("not_preferred"), periods_per_day),
            )
        )
    ids = [c.id for c in classes]
    if len(set(ids)) != len(ids):
        raise ValueError("Los ids de clase deben ser únicos")
    return classes


def load_classes(path: str, periods_per_day: int = PERIODS_PER_DAY) -> List[SchoolClass]:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return classes_from_dataframe(df, periods_per_day)


def generate_random_classes(
    n_classes: int = 33,
    rng: Optional[random.Random] = None,
    max_conflicts: int = 3,
) -> List[SchoolClass]:
    """Datos de prueba: clases con hasta `max_conflicts` slots prohibidos."""
    rng = rng if rng is not None else random.Random()
    classes = []
    for i in range(n_classes):
        conflicts = [
            TimeSlot(day=rng.choice(DAYS), period=rng.randint(1, PERIODS_PER_DAY))
            for _ in range(rng.randint(0, max_conflicts))
        ]
        classes.append(SchoolClass(id=f"class_{i + 1}", name=f"Class {i + 1}", conflicts=conflicts))
    return classes
