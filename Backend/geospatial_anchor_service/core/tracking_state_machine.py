"""
Tracking State Machine
Derives geospatial localization readiness from per-tick tracking signals
"""

import logging
from typing import Optional, Tuple
from dataclasses import dataclass, replace

from .tracking_models import (
    Classification,
    EarthState,
    FeatureSupport,
    LocationServiceStatus,
    SessionState,
    TrackingSnapshot,
    HEALTHY_SESSION_STATES,
    RUNNING_SESSION_STATES
)

logger = logging.getLogger(__name__)

# Help message shown while the session starts localizing
LOCALIZING_MESSAGE = "Localizing your device to set anchor."

# Help message shown while earth tracking is lost or accuracy is beyond thresholds
LOCALIZATION_INSTRUCTION_MESSAGE = "Point your camera at buildings, stores, and signs near you."

LOCALIZATION_FAILURE_MESSAGE = (
    "Localization not possible.\n"
    "Close and open the app to restart the session."
)

LOCALIZATION_SUCCESS_MESSAGE = "Localization completed."

UNSUPPORTED_REASON = "Geospatial API is not supported by this device."

LOCATION_SERVICE_FAILED_REASON = (
    "Geospatial session failed to start location service.\n"
    "Please start the app again and grant precise location permission."
)


def session_error_reason(session_state: SessionState) -> str:
    return (
        f"Geospatial session encountered an ARSession error state {session_state.value}.\n"
        "Please start the app again."
    )


def earth_error_reason(earth_state: EarthState) -> str:
    return f"Geospatial session encountered an EarthState error: {earth_state.value}"


@dataclass(frozen=True)
class TrackingThresholds:
    """Localization thresholds and timers"""
    heading_accuracy: float = 25.0  # degrees
    horizontal_accuracy: float = 20.0  # meters
    localization_timeout: float = 180.0  # seconds
    feature_enable_grace: float = 3.0  # seconds

    def __post_init__(self):
        if self.heading_accuracy < 0 or self.horizontal_accuracy < 0:
            raise ValueError("Accuracy thresholds must not be negative")

        if self.localization_timeout <= 0:
            raise ValueError("Localization timeout must be positive")

        if self.feature_enable_grace < 0:
            raise ValueError("Feature enable grace must not be negative")

    @classmethod
    def from_settings(cls, config) -> "TrackingThresholds":
        return cls(
            heading_accuracy=config.HEADING_ACCURACY_THRESHOLD,
            horizontal_accuracy=config.HORIZONTAL_ACCURACY_THRESHOLD,
            localization_timeout=config.LOCALIZATION_TIMEOUT_SECONDS,
            feature_enable_grace=config.FEATURE_ENABLE_GRACE_SECONDS
        )


@dataclass(frozen=True)
class LocalizationState:
    """Accumulated state carried between ticks"""
    classification: Classification = Classification.AWAITING_FEATURE_CHECK
    localizing: bool = True
    localization_elapsed: float = 0.0
    feature_enable_requested: bool = False
    enabling_feature: bool = False
    configure_remaining: float = 0.0
    terminal_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.terminal_reason is not None


@dataclass(frozen=True)
class Evaluation:
    """Result of one tick, including the side effects the caller must apply"""
    classification: Classification
    previous: Classification
    session_running: bool = True
    reason: Optional[str] = None
    message: Optional[str] = None
    enable_feature: bool = False
    hide_anchors: bool = False
    show_anchors: bool = False
    replay_history: bool = False

    @property
    def fatal(self) -> bool:
        return self.classification.is_fatal

    @property
    def changed(self) -> bool:
        return self.classification != self.previous


def evaluate(state: LocalizationState, snapshot: TrackingSnapshot, elapsed: float,
             thresholds: TrackingThresholds) -> Tuple[LocalizationState, Evaluation]:
    """
    Advance the localization state by one tick

    Args:
        state: State produced by the previous tick
        snapshot: Signals sampled for this tick
        elapsed: Seconds since the previous tick
        thresholds: Accuracy thresholds and timers

    Returns:
        The next state and the evaluation for this tick
    """
    elapsed = max(0.0, elapsed)
    previous = state.classification

    def finish(next_state: LocalizationState, classification: Classification,
               **fields) -> Tuple[LocalizationState, Evaluation]:
        next_state = replace(next_state, classification=classification)
        if classification.is_fatal and not next_state.is_terminal:
            next_state = replace(next_state, terminal_reason=fields.get('reason') or classification.value)
        return next_state, Evaluation(classification=classification, previous=previous, **fields)

    # Fatal classifications are sticky
    if state.is_terminal:
        return state, Evaluation(
            classification=state.classification,
            previous=previous,
            reason=state.terminal_reason,
            message=state.terminal_reason
        )

    # Session lifecycle errors
    if snapshot.session_state not in HEALTHY_SESSION_STATES:
        reason = session_error_reason(snapshot.session_state)
        return finish(state, Classification.SESSION_ERROR, reason=reason, message=reason)

    if snapshot.location_status == LocationServiceStatus.FAILED:
        return finish(state, Classification.SESSION_ERROR,
                      reason=LOCATION_SERVICE_FAILED_REASON, message=LOCATION_SERVICE_FAILED_REASON)

    # Waiting for session startup
    if snapshot.session_state not in RUNNING_SESSION_STATES:
        return state, Evaluation(classification=previous, previous=previous, session_running=False)

    # Feature support
    if snapshot.feature_support == FeatureSupport.UNKNOWN:
        return finish(state, Classification.AWAITING_FEATURE_CHECK)

    if snapshot.feature_support == FeatureSupport.UNSUPPORTED:
        return finish(state, Classification.UNSUPPORTED,
                      reason=UNSUPPORTED_REASON, message=UNSUPPORTED_REASON)

    if not snapshot.feature_mode_enabled and not state.feature_enable_requested:
        logger.info("Switching session configuration to geospatial mode")
        next_state = replace(
            state,
            feature_enable_requested=True,
            enabling_feature=True,
            configure_remaining=thresholds.feature_enable_grace
        )
        return finish(next_state, Classification.CONFIGURING_FEATURE, enable_feature=True)

    # Waiting for the new configuration to take effect
    if state.enabling_feature:
        remaining = state.configure_remaining - elapsed
        if remaining >= 0:
            return finish(replace(state, configure_remaining=remaining), Classification.CONFIGURING_FEATURE)
        state = replace(state, enabling_feature=False, configure_remaining=0.0)

    if snapshot.earth_state != EarthState.ENABLED:
        reason = earth_error_reason(snapshot.earth_state)
        return finish(state, Classification.EARTH_ERROR, reason=reason, message=reason)

    # Earth localization
    session_ready = (snapshot.session_state == SessionState.SESSION_TRACKING and
                     snapshot.location_service_ready)
    pose = snapshot.effective_pose
    localized = (session_ready and
                 snapshot.is_earth_tracking and
                 snapshot.pose is not None and
                 pose.meets_thresholds(thresholds.horizontal_accuracy, thresholds.heading_accuracy))

    if not localized:
        hide_anchors = False
        if not state.localizing:
            # Lost localization during the session
            logger.info("Geospatial localization lost")
            state = replace(state, localizing=True, localization_elapsed=0.0)
            hide_anchors = True

        state = replace(state, localization_elapsed=state.localization_elapsed + elapsed)

        if state.localization_elapsed > thresholds.localization_timeout:
            logger.error("Geospatial localization passed timeout")
            return finish(state, Classification.LOCALIZATION_TIMED_OUT,
                          reason=LOCALIZATION_FAILURE_MESSAGE,
                          message=LOCALIZATION_FAILURE_MESSAGE,
                          hide_anchors=hide_anchors)

        return finish(state, Classification.LOCALIZING,
                      message=LOCALIZATION_INSTRUCTION_MESSAGE,
                      hide_anchors=hide_anchors)

    if state.localizing:
        logger.info("Geospatial localization completed")
        state = replace(state, localizing=False, localization_elapsed=0.0)
        return finish(state, Classification.LOCALIZED,
                      message=LOCALIZATION_SUCCESS_MESSAGE,
                      show_anchors=True,
                      replay_history=True)

    return finish(state, Classification.LOCALIZED)


class TrackingStateMachine:
    """Stateful wrapper around evaluate() for a single session"""

    def __init__(self, thresholds: Optional[TrackingThresholds] = None):
        self.thresholds = thresholds or TrackingThresholds()
        self.state = LocalizationState()

    @property
    def classification(self) -> Classification:
        return self.state.classification

    def evaluate(self, snapshot: TrackingSnapshot, elapsed: float) -> Evaluation:
        self.state, evaluation = evaluate(self.state, snapshot, elapsed, self.thresholds)
        if evaluation.changed:
            logger.debug(f"Classification {evaluation.previous.value} -> {evaluation.classification.value}")
        return evaluation

    def reset(self):
        """Start over for a new session"""
        self.state = LocalizationState()
