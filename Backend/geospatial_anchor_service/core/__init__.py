"""
Core session components for geospatial AR localization
"""

from .anchor_history import AnchorRecord, HistoryCollection
from .history_store import HistoryStore
from .session_controller import SessionController, UiProjection
from .tracking_state_machine import TrackingStateMachine, TrackingThresholds

__all__ = [
    'AnchorRecord',
    'HistoryCollection',
    'HistoryStore',
    'SessionController',
    'UiProjection',
    'TrackingStateMachine',
    'TrackingThresholds'
]
