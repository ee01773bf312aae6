"""
Remote Tracking Subsystem
Tracking subsystem fed by snapshots reported from an AR client
"""

import logging
import threading
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field, asdict

from .interfaces import AnchorHandle, LocationService, TrackingSubsystem
from .tracking_models import (
    FeatureSupport,
    LocationServiceStatus,
    SessionState,
    TrackingSnapshot
)

logger = logging.getLogger(__name__)


@dataclass
class ClientCommand:
    """Instruction for the AR client to carry out on its next frame"""
    type: str  # enable_feature, place_anchor, remove_anchor, set_anchor_visible, start/stop_location_service
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RemoteTrackingSubsystem(TrackingSubsystem):
    """
    Tracking subsystem proxy for a remote AR client
    The client reports snapshots; side effects are queued as commands for it to apply
    """

    def __init__(self):
        self.latest_snapshot = TrackingSnapshot(session_state=SessionState.CHECKING_AVAILABILITY)
        self.pending_commands: List[ClientCommand] = []
        self._lock = threading.Lock()

    def report_snapshot(self, snapshot: TrackingSnapshot):
        with self._lock:
            self.latest_snapshot = snapshot

    def queue_command(self, command_type: str, **payload):
        with self._lock:
            self.pending_commands.append(ClientCommand(command_type, payload))

    def drain_commands(self) -> List[ClientCommand]:
        """Return and forget the commands queued since the last drain"""
        with self._lock:
            commands, self.pending_commands = self.pending_commands, []
            return commands

    def get_snapshot(self) -> TrackingSnapshot:
        with self._lock:
            return self.latest_snapshot

    def enable_feature(self):
        self.queue_command("enable_feature")

    def is_feature_supported(self) -> FeatureSupport:
        return self.get_snapshot().feature_support

    def add_anchor(self, latitude: float, longitude: float, altitude: float,
                   orientation: List[float]) -> Optional[AnchorHandle]:
        # Geospatial anchors can only be created while earth tracking
        if not self.get_snapshot().is_earth_tracking:
            logger.debug("Refusing anchor while earth is not tracking")
            return None

        handle = AnchorHandle(
            latitude=latitude,
            longitude=longitude,
            altitude=altitude,
            rotation=list(orientation)
        )
        self.queue_command(
            "place_anchor",
            anchor_id=handle.id,
            latitude=latitude,
            longitude=longitude,
            altitude=altitude,
            rotation=handle.rotation
        )
        return handle

    def remove_anchor(self, handle: AnchorHandle):
        self.queue_command("remove_anchor", anchor_id=handle.id)

    def set_anchor_visible(self, handle: AnchorHandle, visible: bool):
        self.queue_command("set_anchor_visible", anchor_id=handle.id, visible=visible)


class RemoteLocationService(LocationService):
    """Location service status as reported by the AR client"""

    def __init__(self, tracking: RemoteTrackingSubsystem):
        self.tracking = tracking

    def status(self) -> LocationServiceStatus:
        return self.tracking.get_snapshot().location_status

    def start(self):
        self.tracking.queue_command("start_location_service")

    def stop(self):
        self.tracking.queue_command("stop_location_service")
