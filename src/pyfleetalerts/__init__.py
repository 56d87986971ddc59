"""pyfleetalerts - Async telemetry alert detection and distribution engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfleetalerts")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfleetalerts.client import FleetAlertsClient
from pyfleetalerts.config import FleetAlertsConfig
from pyfleetalerts.engine.dedup import should_emit
from pyfleetalerts.engine.evaluator import evaluate_thresholds
from pyfleetalerts.exceptions import (
    DuplicateAlertError,
    FeedAuthenticationError,
    FeedError,
    FleetAlertsError,
    FleetApiError,
    FleetConfigError,
    FleetTransportError,
)
from pyfleetalerts.models import (
    AlertLocation,
    AlertQuery,
    AlertSeverity,
    AlertStatus,
    AlertType,
    CandidateAlert,
    DeviceSnapshot,
    PersistedAlert,
    RegistrationResult,
    TriggerCondition,
    VehicleConfig,
    VehicleRef,
)
from pyfleetalerts.registry import AlertObserver, SubscriptionRegistry, Unsubscribe

__all__ = [
    "__version__",
    "AlertLocation",
    "AlertObserver",
    "AlertQuery",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "CandidateAlert",
    "DeviceSnapshot",
    "DuplicateAlertError",
    "FeedAuthenticationError",
    "FeedError",
    "FleetAlertsClient",
    "FleetAlertsConfig",
    "FleetAlertsError",
    "FleetApiError",
    "FleetConfigError",
    "FleetTransportError",
    "PersistedAlert",
    "RegistrationResult",
    "SubscriptionRegistry",
    "TriggerCondition",
    "Unsubscribe",
    "VehicleConfig",
    "VehicleRef",
    "evaluate_thresholds",
    "should_emit",
]
