"""
Session Controller - Geospatial session orchestration
Binds localization readiness to anchor lifecycle, history replay and UI state
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Any
from dataclasses import dataclass, replace
from datetime import datetime

from scipy.spatial.transform import Rotation

from .anchor_history import AnchorRecord, HistoryCollection
from .history_store import HistoryStore
from .interfaces import (
    AnchorHandle,
    Clock,
    KeyValueStore,
    LocationService,
    NullLocationService,
    SystemClock,
    TrackingSubsystem
)
from .session_terminator import SessionTerminator, Scheduler
from .tracking_models import Classification, SessionState, TrackingSnapshot
from .tracking_state_machine import (
    Evaluation,
    TrackingStateMachine,
    TrackingThresholds,
    LOCALIZING_MESSAGE
)

logger = logging.getLogger(__name__)

MISSING_COMPONENTS_REASON = "Geospatial session failed with missing AR components."
NOT_TRACKING_INFO = "GEOSPATIAL POSE: not tracking"
DEFAULT_PRIVACY_PROMPT_KEY = "HasDisplayedGeospatialPrivacyPrompt"


def anchor_orientation(heading: float) -> List[float]:
    """
    Orientation for an anchor recorded at a compass heading

    The anchored object faces forward along +z, so it is turned by 180 - heading
    about the vertical axis. Returns an [x, y, z, w] quaternion.
    """
    return Rotation.from_euler('y', 180.0 - heading, degrees=True).as_quat().tolist()


@dataclass(frozen=True)
class UiProjection:
    """Presentation state derived from the session"""
    message: str
    place_anchor_enabled: bool
    clear_all_enabled: bool
    info_panel_visible: bool
    info_text: str
    keep_screen_awake: bool
    classification: Classification
    in_ar_view: bool
    terminating: bool
    debug_text: Optional[str] = None


class SessionController:
    """
    Per-tick geospatial session orchestration
    Replays stored anchors once per session after the first localization
    """

    def __init__(self, tracking: Optional[TrackingSubsystem], history_store: HistoryStore,
                 prefs: KeyValueStore,
                 location_service: Optional[LocationService] = None,
                 clock: Optional[Clock] = None,
                 thresholds: Optional[TrackingThresholds] = None,
                 error_display_seconds: float = 3.0,
                 scheduler: Optional[Scheduler] = None,
                 on_terminate: Optional[Callable[[str], None]] = None,
                 privacy_prompt_key: str = DEFAULT_PRIVACY_PROMPT_KEY,
                 debug: bool = False):
        self.tracking = tracking
        self.history_store = history_store
        self.prefs = prefs
        self.location_service = location_service or NullLocationService()
        self.clock = clock or SystemClock()
        self.state_machine = TrackingStateMachine(thresholds)
        self.error_display_seconds = error_display_seconds
        self.scheduler = scheduler
        self.on_terminate = on_terminate
        self.privacy_prompt_key = privacy_prompt_key
        self.debug = debug

        self.terminator = self._new_terminator()
        self.history = HistoryCollection()
        self.anchors: List[AnchorHandle] = []
        self.enabled = False
        self.terminated = False
        self.in_ar_view = False
        self.replay_pending = False
        self.classification = self.state_machine.classification
        self.last_snapshot: Optional[TrackingSnapshot] = None

        # UI state
        self.message = ""
        self.place_anchor_enabled = False
        self.clear_all_enabled = False
        self.info_panel_visible = False
        self.info_text = ""
        self.keep_screen_awake = False

        self.stats = {
            'ticks': 0,
            'anchors_set': 0,
            'placement_failures': 0,
            'anchors_replayed': 0,
            'replays': 0,
            'fatal_errors': 0
        }

        self._lock = threading.RLock()

    def _new_terminator(self) -> SessionTerminator:
        terminator = SessionTerminator(
            lambda reason: self._handle_termination(terminator, reason),
            display_seconds=self.error_display_seconds,
            scheduler=self.scheduler
        )
        return terminator

    @property
    def is_terminating(self) -> bool:
        return self.terminator.is_terminating

    # Lifecycle

    def enable(self) -> UiProjection:
        """Start a session: load history and wait for localization"""
        with self._lock:
            logger.info("Enabling geospatial session")

            # Release anchors and persist history of a session still running
            self._disable_locked()
            self.terminator = self._new_terminator()
            self.terminated = False
            self.state_machine.reset()
            self.classification = self.state_machine.classification
            self.in_ar_view = self.prefs.has_key(self.privacy_prompt_key)

            self.info_panel_visible = False
            self.place_anchor_enabled = False
            self.clear_all_enabled = False
            self.message = LOCALIZING_MESSAGE

            self.location_service.start()

            self.history = self.history_store.load()
            self.replay_pending = len(self.history) > 0
            self.enabled = True

            logger.info(f"Loaded {len(self.history)} anchor(s) from history")
            return self.projection()

    def disable(self) -> UiProjection:
        """Stop the session: release anchors and persist history"""
        with self._lock:
            self._disable_locked()
            return self.projection()

    def _disable_locked(self):
        if not self.enabled:
            return

        logger.info("Disabling geospatial session")
        self.location_service.stop()
        self._destroy_anchors()
        self.history = self.history_store.save(self.history)
        self.enabled = False

    def accept_privacy_prompt(self) -> UiProjection:
        """Remember the privacy prompt and switch to the AR view"""
        with self._lock:
            self.prefs.set_string(self.privacy_prompt_key, "1")
            self.in_ar_view = True
            return self.projection()

    def _handle_termination(self, terminator: SessionTerminator, reason: str):
        with self._lock:
            # Timers from an earlier session must not end the current one
            if terminator is not self.terminator:
                logger.info(f"Ignoring termination from a previous session: {reason}")
                return
            self._disable_locked()
            self.terminated = True

        if self.on_terminate:
            self.on_terminate(reason)

    # Per-tick evaluation

    def tick(self, elapsed: float) -> UiProjection:
        """Evaluate one frame"""
        with self._lock:
            if not self.enabled or not self.in_ar_view or self.is_terminating:
                return self.projection()

            self.stats['ticks'] += 1

            if self.tracking is None:
                self._fail(Classification.SESSION_ERROR, MISSING_COMPONENTS_REASON)
                return self.projection()

            snapshot = replace(self.tracking.get_snapshot(),
                               location_status=self.location_service.status())
            self.last_snapshot = snapshot

            # Only keep the screen awake while tracking
            self.keep_screen_awake = snapshot.session_state == SessionState.SESSION_TRACKING

            evaluation = self.state_machine.evaluate(snapshot, elapsed)
            self._apply(evaluation, snapshot)
            return self.projection()

    def _apply(self, evaluation: Evaluation, snapshot: TrackingSnapshot):
        if not evaluation.session_running:
            return

        self.classification = evaluation.classification

        if evaluation.enable_feature:
            self.tracking.enable_feature()

        if evaluation.hide_anchors:
            self.place_anchor_enabled = False
            self.clear_all_enabled = False
            self._set_anchors_visible(False)

        if evaluation.fatal:
            self._fail(evaluation.classification, evaluation.reason)
            return

        if evaluation.classification not in (Classification.LOCALIZING, Classification.LOCALIZED):
            return

        if evaluation.show_anchors:
            self.place_anchor_enabled = True
            self.clear_all_enabled = len(self.anchors) > 0
            self._set_anchors_visible(True)

        if evaluation.message:
            self.message = evaluation.message

        if evaluation.replay_history:
            self._replay_history()

        self.info_panel_visible = True
        if snapshot.is_earth_tracking:
            self.info_text = snapshot.effective_pose.describe()
        else:
            self.info_text = NOT_TRACKING_INFO

    def _fail(self, classification: Classification, reason: str):
        self.classification = classification
        self.place_anchor_enabled = False
        self.clear_all_enabled = False
        self.info_panel_visible = False
        self.message = reason

        if self.terminator.request(reason):
            self.stats['fatal_errors'] += 1

    def _replay_history(self):
        if not self.replay_pending:
            return

        self.replay_pending = False
        self.stats['replays'] += 1

        for record in self.history:
            if self._place(record):
                self.stats['anchors_replayed'] += 1

        self.clear_all_enabled = len(self.history) > 0
        self.message = f"{len(self.anchors)} anchor(s) set from history."
        logger.info(self.message)

    # Anchors

    def _place(self, record: AnchorRecord) -> bool:
        orientation = anchor_orientation(record.heading)

        try:
            handle = self.tracking.add_anchor(
                record.latitude, record.longitude, record.altitude, orientation)
        except Exception as e:
            logger.error(f"Anchor placement raised: {e}")
            handle = None

        if handle is None:
            self.stats['placement_failures'] += 1
            logger.warning(f"Failed to place anchor at {record.latitude:.6f}, {record.longitude:.6f}")
            return False

        self.anchors.append(handle)
        return True

    def _set_anchors_visible(self, visible: bool):
        for handle in self.anchors:
            handle.visible = visible
            self.tracking.set_anchor_visible(handle, visible)

    def _destroy_anchors(self):
        if self.tracking is not None:
            for handle in self.anchors:
                self.tracking.remove_anchor(handle)
        self.anchors.clear()

    def set_anchor(self) -> bool:
        """Place an anchor at the current camera pose and record it"""
        with self._lock:
            if not self.enabled or self.is_terminating or self.tracking is None:
                logger.warning("Ignoring set anchor outside an active session")
                return False

            pose = self.tracking.get_snapshot().effective_pose
            record = AnchorRecord(
                latitude=pose.latitude,
                longitude=pose.longitude,
                altitude=pose.altitude,
                heading=pose.heading % 360.0,
                created_at=self.clock.now()
            )

            placed = self._place(record)
            if placed:
                self.history.add(record)
                self.stats['anchors_set'] += 1
                self.message = f"{len(self.anchors)} Anchor(s) Set!"
                self.history = self.history_store.save(self.history)
            else:
                self.message = "Failed to set an anchor!"

            self.clear_all_enabled = len(self.history) > 0
            return placed

    def clear_all(self) -> UiProjection:
        """Remove every anchor, including stored history"""
        with self._lock:
            self._destroy_anchors()
            self.history = self.history_store.clear()
            self.message = "Anchor(s) cleared!"
            self.clear_all_enabled = False
            return self.projection()

    # Presentation

    def projection(self) -> UiProjection:
        with self._lock:
            return UiProjection(
                message=self.message,
                place_anchor_enabled=self.place_anchor_enabled,
                clear_all_enabled=self.clear_all_enabled,
                info_panel_visible=self.info_panel_visible,
                info_text=self.info_text,
                keep_screen_awake=self.keep_screen_awake,
                classification=self.classification,
                in_ar_view=self.in_ar_view,
                terminating=self.is_terminating,
                debug_text=self._debug_text() if self.debug else None
            )

    def _debug_text(self) -> str:
        snapshot = self.last_snapshot
        lines = [
            f"IsReturning: {self.is_terminating}",
            f"IsLocalizing: {self.state_machine.state.localizing}",
            f"Classification: {self.classification.value}"
        ]
        if snapshot is not None:
            pose = snapshot.effective_pose
            lines.extend([
                f"SessionState: {snapshot.session_state.value}",
                f"LocationServiceStatus: {snapshot.location_status.value}",
                f"FeatureSupported: {snapshot.feature_support.value}",
                f"EarthState: {snapshot.earth_state.value}",
                f"EarthTrackingState: {snapshot.earth_tracking_state.value}",
                f"  LAT/LNG: {pose.latitude:.6f}, {pose.longitude:.6f}",
                f"  HorizontalAcc: {pose.horizontal_accuracy:.6f}",
                f"  ALT: {pose.altitude:.2f}",
                f"  VerticalAcc: {pose.vertical_accuracy:.2f}",
                f"  Heading: {pose.heading:.2f}",
                f"  HeadingAcc: {pose.heading_accuracy:.2f}"
            ])
        return "\n".join(lines)

    def get_metrics(self) -> Dict[str, Any]:
        """Get session metrics"""
        with self._lock:
            state = self.state_machine.state
            return {
                'statistics': dict(self.stats),
                'session': {
                    'enabled': self.enabled,
                    'in_ar_view': self.in_ar_view,
                    'classification': self.classification.value,
                    'localization_elapsed': state.localization_elapsed,
                    'terminating': self.is_terminating,
                    'terminated': self.terminated,
                    'placed_anchors': len(self.anchors),
                    'history_size': len(self.history),
                    'replay_pending': self.replay_pending
                },
                'history': self.history_store.get_metrics(),
                'timestamp': datetime.now().isoformat()
            }
