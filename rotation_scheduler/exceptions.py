"""
Errores del motor de horarios.

Solo las violaciones de contrato del llamador se reportan como excepción;
el resto de casos degenerados se resuelven generando cromosomas aleatorios.
"""


class SchedulerError(Exception):
    """Error base del planificador."""


class ConfigValidationError(SchedulerError, ValueError):
    """Configuración inválida (tasas fuera de rango, tamaños no positivos)."""


class GeneCountMismatchError(SchedulerError, ValueError):
    """Los padres de un cruce no tienen la misma cantidad de genes."""


class PopulationCapacityError(SchedulerError, ValueError):
    """Se intentó reemplazar la población con más cromosomas que su capacidad."""


class EmptyPopulationError(SchedulerError, LookupError):
    """Consulta de mejor cromosoma sobre una población vacía."""


class LockedAssignmentError(SchedulerError, ValueError):
    """Las asignaciones bloqueadas chocan entre sí o con los conflictos de su clase."""
