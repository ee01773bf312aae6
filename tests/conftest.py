"""
Shared fixtures and fakes for the geospatial anchor service tests
"""

from datetime import datetime
from typing import List, Optional

import pytest

from geospatial_anchor_service.core.history_store import HistoryStore
from geospatial_anchor_service.core.interfaces import AnchorHandle, Clock, TrackingSubsystem
from geospatial_anchor_service.core.session_controller import SessionController
from geospatial_anchor_service.core.tracking_models import (
    EarthState,
    FeatureSupport,
    GeospatialPose,
    SessionState,
    TrackingSnapshot,
    TrackingState
)
from geospatial_anchor_service.services.key_value_store import InMemoryKeyValueStore

GOOD_POSE = GeospatialPose(
    latitude=37.0,
    longitude=-122.0,
    altitude=10.0,
    heading=90.0,
    horizontal_accuracy=5.0,
    vertical_accuracy=2.0,
    heading_accuracy=10.0
)


def localized_snapshot(pose: GeospatialPose = GOOD_POSE, **overrides) -> TrackingSnapshot:
    fields = dict(
        session_state=SessionState.SESSION_TRACKING,
        feature_support=FeatureSupport.SUPPORTED,
        feature_mode_enabled=True,
        earth_state=EarthState.ENABLED,
        earth_tracking_state=TrackingState.TRACKING,
        pose=pose
    )
    fields.update(overrides)
    return TrackingSnapshot(**fields)


def not_tracking_snapshot(**overrides) -> TrackingSnapshot:
    fields = dict(earth_tracking_state=TrackingState.NOT_TRACKING, pose=None)
    fields.update(overrides)
    return localized_snapshot(**fields)


class FakeClock(Clock):
    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current


class FakeTrackingSubsystem(TrackingSubsystem):
    def __init__(self, snapshot: Optional[TrackingSnapshot] = None):
        self.snapshot = snapshot or localized_snapshot()
        self.fail_placement = False
        self.enable_calls = 0
        self.added: List[AnchorHandle] = []
        self.removed: List[AnchorHandle] = []
        self.visibility_calls = []

    def get_snapshot(self) -> TrackingSnapshot:
        return self.snapshot

    def enable_feature(self):
        self.enable_calls += 1

    def is_feature_supported(self) -> FeatureSupport:
        return self.snapshot.feature_support

    def add_anchor(self, latitude, longitude, altitude, orientation):
        if self.fail_placement:
            return None
        handle = AnchorHandle(latitude, longitude, altitude, list(orientation))
        self.added.append(handle)
        return handle

    def remove_anchor(self, handle):
        self.removed.append(handle)

    def set_anchor_visible(self, handle, visible):
        self.visibility_calls.append((handle.id, visible))


class FakeScheduler:
    """Collects scheduled callbacks instead of starting timers"""

    def __init__(self):
        self.scheduled = []

    def __call__(self, delay, callback):
        self.scheduled.append((delay, callback))
        return callback

    def fire_all(self):
        for _, callback in list(self.scheduled):
            callback()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 15, 12, 0, 0))


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def history_store(kv_store, clock):
    return HistoryStore(kv_store, clock=clock)


@pytest.fixture
def tracking():
    return FakeTrackingSubsystem()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def terminations():
    return []


@pytest.fixture
def controller(tracking, history_store, kv_store, clock, scheduler, terminations):
    kv_store.set_string("HasDisplayedGeospatialPrivacyPrompt", "1")
    return SessionController(
        tracking,
        history_store,
        kv_store,
        clock=clock,
        scheduler=scheduler,
        on_terminate=terminations.append
    )
