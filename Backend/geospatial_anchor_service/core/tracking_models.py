"""
Geospatial Tracking Models
Per-tick signals reported by the AR tracking subsystem and the derived readiness
"""

from enum import Enum
from typing import Optional
from dataclasses import dataclass


class SessionState(Enum):
    """AR session lifecycle states"""
    NONE = "none"
    UNSUPPORTED = "unsupported"
    CHECKING_AVAILABILITY = "checking_availability"
    NEEDS_INSTALL = "needs_install"
    INSTALLING = "installing"
    READY = "ready"
    SESSION_INITIALIZING = "session_initializing"
    SESSION_TRACKING = "session_tracking"


# Session states that are not an error
HEALTHY_SESSION_STATES = frozenset({
    SessionState.CHECKING_AVAILABILITY,
    SessionState.READY,
    SessionState.SESSION_INITIALIZING,
    SessionState.SESSION_TRACKING,
})

# Session states in which the geospatial checks run
RUNNING_SESSION_STATES = frozenset({
    SessionState.SESSION_INITIALIZING,
    SessionState.SESSION_TRACKING,
})


class FeatureSupport(Enum):
    """Device support for the geospatial mode"""
    UNKNOWN = "unknown"
    UNSUPPORTED = "unsupported"
    SUPPORTED = "supported"


class EarthState(Enum):
    """Earth (geospatial) subsystem state"""
    ENABLED = "enabled"
    ERROR_INTERNAL = "error_internal"
    ERROR_GEOSPATIAL_MODE_DISABLED = "error_geospatial_mode_disabled"
    ERROR_NOT_AUTHORIZED = "error_not_authorized"
    ERROR_RESOURCES_EXHAUSTED = "error_resources_exhausted"
    ERROR_PACKAGE_NOT_FOUND = "error_package_not_found"
    ERROR_UNSUPPORTED_CONFIGURATION = "error_unsupported_configuration"


class TrackingState(Enum):
    """Earth tracking confidence"""
    TRACKING = "tracking"
    LIMITED = "limited"
    NOT_TRACKING = "not_tracking"


class LocationServiceStatus(Enum):
    """Platform location service status"""
    STOPPED = "stopped"
    INITIALIZING = "initializing"
    RUNNING = "running"
    FAILED = "failed"


class Classification(Enum):
    """User-facing readiness derived each tick"""
    AWAITING_FEATURE_CHECK = "awaiting_feature_check"
    UNSUPPORTED = "unsupported"
    CONFIGURING_FEATURE = "configuring_feature"
    EARTH_ERROR = "earth_error"
    LOCALIZING = "localizing"
    LOCALIZED = "localized"
    LOCALIZATION_TIMED_OUT = "localization_timed_out"
    SESSION_ERROR = "session_error"

    @property
    def is_fatal(self) -> bool:
        return self in FATAL_CLASSIFICATIONS


FATAL_CLASSIFICATIONS = frozenset({
    Classification.UNSUPPORTED,
    Classification.EARTH_ERROR,
    Classification.LOCALIZATION_TIMED_OUT,
    Classification.SESSION_ERROR,
})


@dataclass(frozen=True)
class GeospatialPose:
    """Camera geospatial pose with accuracy estimates"""
    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    heading: float = 0.0
    horizontal_accuracy: float = 0.0
    vertical_accuracy: float = 0.0
    heading_accuracy: float = 0.0

    def __post_init__(self):
        """Validate pose data"""
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError("Latitude must be between -90 and 90 degrees")

        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError("Longitude must be between -180 and 180 degrees")

        if min(self.horizontal_accuracy, self.vertical_accuracy, self.heading_accuracy) < 0:
            raise ValueError("Accuracy estimates must not be negative")

    def meets_thresholds(self, horizontal_threshold: float, heading_threshold: float) -> bool:
        """Check accuracy against localization thresholds"""
        return (self.horizontal_accuracy <= horizontal_threshold and
                self.heading_accuracy <= heading_threshold)

    def describe(self) -> str:
        """Human-readable pose readout"""
        return (
            f"Latitude/Longitude: {self.latitude:.6f}°, {self.longitude:.6f}°\n"
            f"Horizontal Accuracy: {self.horizontal_accuracy:.6f}m\n"
            f"Altitude: {self.altitude:.2f}m\n"
            f"Vertical Accuracy: {self.vertical_accuracy:.2f}m\n"
            f"Heading: {self.heading:.1f}°\n"
            f"Heading Accuracy: {self.heading_accuracy:.1f}°\n"
        )


EMPTY_POSE = GeospatialPose()


@dataclass(frozen=True)
class TrackingSnapshot:
    """Signals sampled from the tracking subsystem for one tick"""
    session_state: SessionState
    feature_support: FeatureSupport = FeatureSupport.UNKNOWN
    feature_mode_enabled: bool = False
    earth_state: EarthState = EarthState.ENABLED
    earth_tracking_state: TrackingState = TrackingState.NOT_TRACKING
    pose: Optional[GeospatialPose] = None
    location_status: LocationServiceStatus = LocationServiceStatus.RUNNING

    @property
    def location_service_ready(self) -> bool:
        return self.location_status == LocationServiceStatus.RUNNING

    @property
    def is_earth_tracking(self) -> bool:
        return self.earth_tracking_state == TrackingState.TRACKING

    @property
    def effective_pose(self) -> GeospatialPose:
        """Reported pose while earth tracking, otherwise an empty pose"""
        if self.is_earth_tracking and self.pose is not None:
            return self.pose
        return EMPTY_POSE
