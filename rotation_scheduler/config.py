"""
Configuración del algoritmo genético.

Incluye un cargador desde YAML (o JSON) para dejar los parámetros
reproducibles y configurables, más las secciones de restricciones
duras/blandas que consume el evaluador.
"""
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json

import yaml

from .exceptions import ConfigValidationError
from .model import DAYS, PERIODS_PER_DAY, HardConstraints, SoftConstraints
from .timeslots import parse_time_slot

MUTATION_STRATEGIES = ("swap", "multi_swap")


@dataclass
class GAConfig:
    # Algoritmo genético
    population_size: int = 100
    generations: int = 100
    crossover_rate: float = 0.8
    mutation_rate: float = 0.2
    tournament_size: int = 5
    elite_fraction: float = 0.0   # 0 -> solo el campeón pasa a la siguiente generación
    mutation_strategy: str = "swap"
    max_swaps: int = 3
    seed: Optional[int] = None

    # Límites que conoce el orquestador (el evaluador los penaliza)
    max_classes_per_day: Optional[int] = None
    max_classes_per_week: Optional[int] = None

    # Grilla
    days: List[str] = field(default_factory=lambda: list(DAYS))
    periods_per_day: int = PERIODS_PER_DAY

    # Reporte de progreso
    verbose: bool = False
    log_every: int = 10

    # Restricciones en crudo (tal como vienen del YAML)
    hard: Dict[str, Any] = field(default_factory=dict)
    soft: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GAConfig":
        merged = asdict(cls())
        for k, v in data.items():
            if k in merged:
                merged[k] = v
        return cls(**merged)

    def with_overrides(self, **changes: Any) -> "GAConfig":
        data = asdict(self)
        data.update({k: v for k, v in changes.items() if v is not None})
        return GAConfig.from_dict(data)

    def validate(self) -> "GAConfig":
        if self.population_size <= 0:
            raise ConfigValidationError("population_size debe ser positivo")
        if self.generations < 0:
            raise ConfigValidationError("generations no puede ser negativo")
        if self.tournament_size <= 0:
            raise ConfigValidationError("tournament_size debe ser positivo")
        for name in ("crossover_rate", "mutation_rate", "elite_fraction"):
            val = getattr(self, name)
            if not 0.0 <= val <= 1.0:
                raise ConfigValidationError(f"{name} debe estar en [0, 1], se recibió {val}")
        if self.mutation_strategy not in MUTATION_STRATEGIES:
            raise ConfigValidationError(
                f"mutation_strategy inválida: {self.mutation_strategy!r}. Opciones: {MUTATION_STRATEGIES}"
            )
        if self.max_swaps < 1:
            raise ConfigValidationError("max_swaps debe ser al menos 1")
        if not self.days or self.periods_per_day <= 0:
            raise ConfigValidationError("La grilla necesita al menos un día y un periodo")
        try:
            self.hard_constraints()
            self.soft_constraints()
        except (ValueError, KeyError, TypeError) as e:
            raise ConfigValidationError(f"Restricciones inválidas: {e}")
        return self

    def hard_constraints(self) -> HardConstraints:
        return build_hard_constraints(self.hard, self)

    def soft_constraints(self) -> SoftConstraints:
        return build_soft_constraints(self.soft, self.periods_per_day)


def build_hard_constraints(raw: Dict[str, Any], cfg: Optional[GAConfig] = None) -> HardConstraints:
    periods = cfg.periods_per_day if cfg is not None else PERIODS_PER_DAY
    hard = HardConstraints(
        personal_conflicts=[parse_time_slot(s, periods) for s in raw.get("personal_conflicts", [])],
        max_consecutive_periods=raw.get("max_consecutive_periods"),
        daily_min_classes=raw.get("daily_min_classes"),
        daily_max_classes=raw.get("daily_max_classes"),
        weekly_min_classes=raw.get("weekly_min_classes"),
        weekly_max_classes=raw.get("weekly_max_classes"),
    )
    # Los límites de la config del AG actúan como default
    if cfg is not None:
        if hard.daily_max_classes is None:
            hard.daily_max_classes = cfg.max_classes_per_day
        if hard.weekly_max_classes is None:
            hard.weekly_max_classes = cfg.max_classes_per_week
    return hard


def _pairs(items: List[Dict[str, Any]], periods: int) -> List[Tuple[str, Any]]:
    return [(str(it["class_id"]), parse_time_slot(it["slot"], periods)) for it in items]


def build_soft_constraints(raw: Dict[str, Any], periods_per_day: int = PERIODS_PER_DAY) -> SoftConstraints:
    return SoftConstraints(
        preferred=_pairs(raw.get("preferred", []), periods_per_day),
        not_preferred=_pairs(raw.get("not_preferred", []), periods_per_day),
        balance_workload=bool(raw.get("balance_workload", False)),
    )


def _load_yaml_or_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text) or {}
    return yaml.safe_load(text) or {}


def load_config(path: str = "config.yaml") -> GAConfig:
    cfg_path = Path(path)
    try:
        data = _load_yaml_or_json(cfg_path)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigValidationError(f"No se pudo leer {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigValidationError("config.yaml debe contener un objeto mapeo")
    return GAConfig.from_dict(data).validate()
