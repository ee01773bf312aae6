"""
Collaborator Interfaces
Abstract boundaries to the tracking subsystem, platform services and storage
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from datetime import datetime
from dataclasses import dataclass, field
import uuid

from .tracking_models import TrackingSnapshot, FeatureSupport, LocationServiceStatus


@dataclass
class AnchorHandle:
    """Anchor created by the tracking subsystem"""
    latitude: float
    longitude: float
    altitude: float
    rotation: List[float]  # [x, y, z, w] quaternion
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    visible: bool = True


class TrackingSubsystem(ABC):
    """AR geospatial tracking subsystem, treated as a black box"""

    @abstractmethod
    def get_snapshot(self) -> TrackingSnapshot:
        """Sample the current session and earth tracking signals"""

    @abstractmethod
    def enable_feature(self):
        """Switch the session configuration to the geospatial mode"""

    @abstractmethod
    def is_feature_supported(self) -> FeatureSupport:
        """Report device support for the geospatial mode"""

    @abstractmethod
    def add_anchor(self, latitude: float, longitude: float, altitude: float,
                   orientation: List[float]) -> Optional[AnchorHandle]:
        """Create a geospatial anchor, or return None when the subsystem refuses"""

    @abstractmethod
    def remove_anchor(self, handle: AnchorHandle):
        """Release an anchor and its attached objects"""

    @abstractmethod
    def set_anchor_visible(self, handle: AnchorHandle, visible: bool):
        """Show or hide the object attached to an anchor"""


class LocationService(ABC):
    """Platform location service"""

    @abstractmethod
    def status(self) -> LocationServiceStatus:
        pass

    @abstractmethod
    def start(self):
        pass

    @abstractmethod
    def stop(self):
        pass


class NullLocationService(LocationService):
    """Location service for platforms that do not poll one; always ready"""

    def status(self) -> LocationServiceStatus:
        return LocationServiceStatus.RUNNING

    def start(self):
        pass

    def stop(self):
        pass


class KeyValueStore(ABC):
    """String key-value persistence"""

    @abstractmethod
    def get_string(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_string(self, key: str, value: str):
        pass

    @abstractmethod
    def has_key(self, key: str) -> bool:
        pass


class Clock(ABC):
    """Wall clock used for anchor timestamps"""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Local wall clock"""

    def now(self) -> datetime:
        return datetime.now()
