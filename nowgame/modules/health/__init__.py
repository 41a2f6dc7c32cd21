"""Health module: daily score records with windowed deductions."""

from nowgame.modules.health.models import DayHealth, DeductionType, HealthData, date_key
from nowgame.modules.health.repository import HealthRepository
from nowgame.modules.health.service import HealthService

__all__ = [
    "DayHealth",
    "DeductionType",
    "HealthData",
    "HealthRepository",
    "HealthService",
    "date_key",
]
