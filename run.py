import argparse
import logging
import random
import time
from datetime import date
from pathlib import Path
from typing import List

import pandas as pd

from rotation_scheduler.config import load_config
from rotation_scheduler.data_loader import generate_random_classes, load_classes
from rotation_scheduler.export import export_outputs, schedule_grid
from rotation_scheduler.model import Assignment, Schedule, SchoolClass, TimeSlot
from rotation_scheduler.scheduler import ClassScheduler
from rotation_scheduler.timeslots import format_time_slot


def print_schedule(schedule: Schedule, classes: List[SchoolClass], periods_per_day: int) -> None:
    print("\n" + "=" * 80)
    print("HORARIO SEMANAL")
    print("=" * 80)
    with pd.option_context("display.max_columns", None, "display.width", 160):
        print(schedule_grid(schedule, classes, periods_per_day).to_string())
    print("=" * 80 + "\n")


def load_schedule_csv(path: str) -> Schedule:
    """Lee un schedule.csv exportado previamente (para re-optimizar)."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    assignments = []
    for _, r in df.iterrows():
        slot_date = date.fromisoformat(r["date"]) if r.get("date") else None
        locked = str(r.get("locked", "")).strip().lower() == "true"
        assignments.append(
            Assignment(
                class_id=r["class_id"],
                time_slot=TimeSlot(day=r["day"], period=int(r["period"]), date=slot_date, is_fixed=locked),
            )
        )
    return Schedule(assignments=assignments)


def main():
    parser = argparse.ArgumentParser(description="Generación de horarios semanales con algoritmo genético")
    parser.add_argument("--config", default="config.yaml", help="Ruta al archivo de configuración")
    parser.add_argument("--classes", default=None, help="CSV con las clases (id,name,conflicts)")
    parser.add_argument("--demo", type=int, default=None, help="Genera N clases aleatorias en vez de leer CSV")
    parser.add_argument("--start-date", default=None, help="Fecha de inicio YYYY-MM-DD")
    parser.add_argument("--seed", type=int, default=None, help="Semilla (sobrescribe la config)")
    parser.add_argument("--reoptimize", default=None, help="schedule.csv previo a re-optimizar")
    parser.add_argument("--lock", nargs="*", default=[], help="Ids de clases bloqueadas al re-optimizar")
    parser.add_argument("--out", default="outputs", help="Directorio de salida")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    cfg = load_config(args.config)
    cfg = cfg.with_overrides(seed=args.seed, verbose=True if args.verbose else None)
    rng = random.Random(cfg.seed)

    print("Cargando clases...")
    if args.classes:
        classes = load_classes(args.classes, cfg.periods_per_day)
    else:
        classes = generate_random_classes(args.demo or 33, rng=rng)
    print(f"Clases: {len(classes)} | Generaciones: {cfg.generations} | Población: {cfg.population_size}")

    scheduler = ClassScheduler(cfg, rng=rng)
    scheduler.set_classes(classes)
    start_date = date.fromisoformat(args.start_date) if args.start_date else None

    start = time.perf_counter()
    if args.reoptimize:
        current = load_schedule_csv(args.reoptimize)
        current.start_date = start_date
        schedule = scheduler.re_optimize_schedule(args.lock, current)
    else:
        schedule = scheduler.generate_schedule(start_date)
    elapsed = time.perf_counter() - start

    stats = scheduler.get_statistics()
    result = scheduler.last_run.get_best_result()

    print("\n--- MEJOR SOLUCIÓN ---")
    print(f"Fitness: {schedule.fitness:.2f} | Violaciones duras: {schedule.hard_constraint_violations} | Tiempo: {elapsed:.2f}s")
    for v in result.violations:
        print(f"  - {v.description}" + (f" [{format_time_slot(v.time_slot)}]" if v.time_slot else ""))
    print_schedule(schedule, classes, cfg.periods_per_day)

    metrics = dict(stats)
    metrics["time_sec"] = elapsed
    export_outputs(
        schedule,
        classes,
        Path(args.out),
        history=scheduler.last_run.history,
        metrics=metrics,
        result=result,
    )
    print(f"Se guardaron resultados en {args.out}/schedule.csv, history.csv y metrics.csv")


if __name__ == "__main__":
    main()
