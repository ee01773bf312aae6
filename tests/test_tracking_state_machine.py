"""
Tests for localization readiness classification
"""

import pytest

from geospatial_anchor_service.core.tracking_models import (
    Classification,
    EarthState,
    FeatureSupport,
    GeospatialPose,
    LocationServiceStatus,
    SessionState,
    TrackingSnapshot,
    TrackingState
)
from geospatial_anchor_service.core.tracking_state_machine import (
    LocalizationState,
    TrackingStateMachine,
    TrackingThresholds,
    evaluate,
    LOCALIZATION_FAILURE_MESSAGE,
    LOCALIZATION_INSTRUCTION_MESSAGE,
    LOCATION_SERVICE_FAILED_REASON,
    UNSUPPORTED_REASON
)

from conftest import GOOD_POSE, localized_snapshot, not_tracking_snapshot


@pytest.fixture
def machine():
    return TrackingStateMachine()


@pytest.mark.parametrize("session_state", [SessionState.SESSION_INITIALIZING, SessionState.SESSION_TRACKING])
@pytest.mark.parametrize("earth_state", [EarthState.ENABLED, EarthState.ERROR_INTERNAL])
@pytest.mark.parametrize("tracking_state", list(TrackingState))
def test_unsupported_feature_is_fatal_regardless_of_other_signals(session_state, earth_state, tracking_state):
    snapshot = TrackingSnapshot(
        session_state=session_state,
        feature_support=FeatureSupport.UNSUPPORTED,
        feature_mode_enabled=True,
        earth_state=earth_state,
        earth_tracking_state=tracking_state,
        pose=GOOD_POSE
    )

    _, evaluation = evaluate(LocalizationState(), snapshot, 0.1, TrackingThresholds())

    assert evaluation.classification == Classification.UNSUPPORTED
    assert evaluation.fatal
    assert evaluation.reason == UNSUPPORTED_REASON


def test_feature_enable_sequence_reaches_localized(machine):
    unknown = localized_snapshot(feature_support=FeatureSupport.UNKNOWN, feature_mode_enabled=False)
    disabled = localized_snapshot(feature_mode_enabled=False)
    enabling = localized_snapshot(feature_mode_enabled=True)
    ready = localized_snapshot()

    results = [
        machine.evaluate(unknown, 0.1),
        machine.evaluate(disabled, 0.1),
        machine.evaluate(enabling, 1.0),
        machine.evaluate(enabling, 1.5),
        machine.evaluate(ready, 1.0),
    ]

    assert [result.classification for result in results] == [
        Classification.AWAITING_FEATURE_CHECK,
        Classification.CONFIGURING_FEATURE,
        Classification.CONFIGURING_FEATURE,
        Classification.CONFIGURING_FEATURE,
        Classification.LOCALIZED,
    ]
    assert results[1].enable_feature
    assert not any(result.enable_feature for result in results[2:])
    assert results[4].replay_history


def test_enable_feature_is_requested_only_once(machine):
    disabled = localized_snapshot(feature_mode_enabled=False)

    first = machine.evaluate(disabled, 0.1)
    second = machine.evaluate(disabled, 0.1)

    assert first.enable_feature
    assert not second.enable_feature
    assert second.classification == Classification.CONFIGURING_FEATURE
    assert machine.state.configure_remaining == pytest.approx(2.9)


def test_localization_times_out_after_accumulated_threshold(machine):
    snapshot = not_tracking_snapshot()

    for _ in range(180):
        evaluation = machine.evaluate(snapshot, 1.0)
        assert evaluation.classification == Classification.LOCALIZING
        assert evaluation.message == LOCALIZATION_INSTRUCTION_MESSAGE

    evaluation = machine.evaluate(snapshot, 1.0)

    assert evaluation.classification == Classification.LOCALIZATION_TIMED_OUT
    assert evaluation.fatal
    assert evaluation.reason == LOCALIZATION_FAILURE_MESSAGE
    assert machine.state.localization_elapsed == pytest.approx(181.0)


def test_fatal_classification_is_sticky(machine):
    machine.evaluate(localized_snapshot(feature_support=FeatureSupport.UNSUPPORTED), 0.1)

    evaluation = machine.evaluate(localized_snapshot(), 0.1)

    assert evaluation.classification == Classification.UNSUPPORTED
    assert not evaluation.changed
    assert evaluation.reason == UNSUPPORTED_REASON


def test_localized_transition_fires_once(machine):
    first = machine.evaluate(localized_snapshot(), 0.1)
    second = machine.evaluate(localized_snapshot(), 0.1)

    assert first.classification == Classification.LOCALIZED
    assert first.replay_history and first.show_anchors
    assert second.classification == Classification.LOCALIZED
    assert not second.replay_history and not second.show_anchors


def test_losing_localization_resets_timer_and_hides_anchors(machine):
    machine.evaluate(not_tracking_snapshot(), 50.0)
    machine.evaluate(localized_snapshot(), 0.1)
    assert machine.state.localization_elapsed == 0.0

    lost = machine.evaluate(not_tracking_snapshot(), 2.0)
    still_lost = machine.evaluate(not_tracking_snapshot(), 2.0)

    assert lost.classification == Classification.LOCALIZING
    assert lost.hide_anchors
    assert not still_lost.hide_anchors
    assert machine.state.localization_elapsed == pytest.approx(4.0)


@pytest.mark.parametrize("pose, localized", [
    (GeospatialPose(horizontal_accuracy=20.0, heading_accuracy=25.0), True),
    (GeospatialPose(horizontal_accuracy=20.5, heading_accuracy=5.0), False),
    (GeospatialPose(horizontal_accuracy=1.0, heading_accuracy=25.1), False),
])
def test_accuracy_thresholds_are_inclusive(machine, pose, localized):
    evaluation = machine.evaluate(localized_snapshot(pose=pose), 0.1)

    expected = Classification.LOCALIZED if localized else Classification.LOCALIZING
    assert evaluation.classification == expected


def test_custom_thresholds_are_honoured():
    machine = TrackingStateMachine(TrackingThresholds(horizontal_accuracy=2.0))

    evaluation = machine.evaluate(localized_snapshot(), 0.1)

    assert evaluation.classification == Classification.LOCALIZING


def test_tracking_without_pose_is_not_localized(machine):
    snapshot = localized_snapshot(pose=None)

    assert machine.evaluate(snapshot, 0.1).classification == Classification.LOCALIZING


def test_session_initializing_is_not_ready(machine):
    snapshot = localized_snapshot(session_state=SessionState.SESSION_INITIALIZING)

    assert machine.evaluate(snapshot, 0.1).classification == Classification.LOCALIZING


def test_location_service_not_running_is_not_ready(machine):
    snapshot = localized_snapshot(location_status=LocationServiceStatus.INITIALIZING)

    assert machine.evaluate(snapshot, 0.1).classification == Classification.LOCALIZING


@pytest.mark.parametrize("session_state", [SessionState.CHECKING_AVAILABILITY, SessionState.READY])
def test_waiting_for_session_keeps_classification(machine, session_state):
    machine.evaluate(localized_snapshot(), 0.1)

    evaluation = machine.evaluate(localized_snapshot(session_state=session_state), 0.1)

    assert not evaluation.session_running
    assert evaluation.classification == Classification.LOCALIZED
    assert not evaluation.fatal


@pytest.mark.parametrize("session_state", [SessionState.NONE, SessionState.UNSUPPORTED, SessionState.NEEDS_INSTALL])
def test_session_error_states_are_fatal(machine, session_state):
    evaluation = machine.evaluate(localized_snapshot(session_state=session_state), 0.1)

    assert evaluation.classification == Classification.SESSION_ERROR
    assert evaluation.fatal
    assert session_state.value in evaluation.reason


def test_location_service_failure_is_fatal(machine):
    evaluation = machine.evaluate(localized_snapshot(location_status=LocationServiceStatus.FAILED), 0.1)

    assert evaluation.classification == Classification.SESSION_ERROR
    assert evaluation.reason == LOCATION_SERVICE_FAILED_REASON


def test_earth_error_reason_names_the_state(machine):
    evaluation = machine.evaluate(localized_snapshot(earth_state=EarthState.ERROR_NOT_AUTHORIZED), 0.1)

    assert evaluation.classification == Classification.EARTH_ERROR
    assert "error_not_authorized" in evaluation.reason


def test_earth_state_is_not_checked_during_grace(machine):
    machine.evaluate(localized_snapshot(feature_mode_enabled=False), 0.1)

    evaluation = machine.evaluate(
        localized_snapshot(earth_state=EarthState.ERROR_INTERNAL), 1.0)

    assert evaluation.classification == Classification.CONFIGURING_FEATURE


def test_invalid_thresholds_are_rejected():
    with pytest.raises(ValueError):
        TrackingThresholds(localization_timeout=0)
