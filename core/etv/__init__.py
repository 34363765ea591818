"""ETV household heating efficiency analysis package."""

# Define public API
__all__ = [
    "ETVSettings",
    "TelemetryRecord",
    "ComputationInput",
    "ComputationResult",
    "SavingStatus",
    "SystemStatus",
    "compute",
    "do_computation",
]

# Import settings
from .settings import ETVSettings

# Import models
from .models import ComputationInput, ComputationResult, SavingStatus, SystemStatus
from .telemetry import TelemetryRecord

# Import computation
from .regression import compute
from .pipeline import do_computation
