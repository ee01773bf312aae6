"""
Geospatial Anchor Service API Routes
Session lifecycle, per-frame evaluation and anchor history endpoints
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends

from geospatial_anchor_service.api.models import (
    AnchorResponse,
    HistoryResponse,
    ProjectionResponse,
    SetAnchorResponse,
    TickRequest
)
from geospatial_anchor_service.core.remote_tracking import RemoteTrackingSubsystem
from geospatial_anchor_service.core.session_controller import SessionController
from geospatial_anchor_service.utils.auth import verify_api_key
from geospatial_anchor_service.utils.metrics import metrics

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["Geospatial Session"])

# Global service references (injected from main.py)
session_controller: Optional[SessionController] = None
remote_tracking: Optional[RemoteTrackingSubsystem] = None


def set_services(controller: Optional[SessionController], tracking: Optional[RemoteTrackingSubsystem]):
    """Inject service instances"""
    global session_controller, remote_tracking
    session_controller = controller
    remote_tracking = tracking


def get_session_controller() -> SessionController:
    """Get session controller dependency"""
    if not session_controller:
        raise HTTPException(status_code=503, detail="Session controller not available")
    return session_controller


def get_remote_tracking() -> RemoteTrackingSubsystem:
    """Get remote tracking dependency"""
    if not remote_tracking:
        raise HTTPException(status_code=503, detail="Tracking subsystem not available")
    return remote_tracking


def _respond(controller: SessionController, tracking: RemoteTrackingSubsystem) -> ProjectionResponse:
    return ProjectionResponse.build(controller.projection(), tracking.drain_commands())


@router.post("/session/enable", response_model=ProjectionResponse)
def enable_session(
    controller: SessionController = Depends(get_session_controller),
    tracking: RemoteTrackingSubsystem = Depends(get_remote_tracking),
    api_key: str = Depends(verify_api_key)
):
    """Start a geospatial session"""
    controller.enable()
    metrics.increment_counter('sessions_enabled_total')
    return _respond(controller, tracking)


@router.post("/session/disable", response_model=ProjectionResponse)
def disable_session(
    controller: SessionController = Depends(get_session_controller),
    tracking: RemoteTrackingSubsystem = Depends(get_remote_tracking),
    api_key: str = Depends(verify_api_key)
):
    """Stop the session and persist history"""
    controller.disable()
    return _respond(controller, tracking)


@router.post("/session/tick", response_model=ProjectionResponse)
def session_tick(
    request: TickRequest,
    controller: SessionController = Depends(get_session_controller),
    tracking: RemoteTrackingSubsystem = Depends(get_remote_tracking),
    api_key: str = Depends(verify_api_key)
):
    """Report one frame of tracking signals and receive the session state"""
    if controller.terminated:
        raise HTTPException(
            status_code=410,
            detail=f"Session terminated: {controller.terminator.reason}"
        )

    tracking.report_snapshot(request.snapshot.to_snapshot())
    projection = controller.tick(request.elapsed)
    metrics.increment_counter('ticks_total')
    metrics.set_gauge('localization_elapsed_seconds', controller.state_machine.state.localization_elapsed)

    return ProjectionResponse.build(projection, tracking.drain_commands())


@router.post("/privacy/accept", response_model=ProjectionResponse)
def accept_privacy_prompt(
    controller: SessionController = Depends(get_session_controller),
    tracking: RemoteTrackingSubsystem = Depends(get_remote_tracking),
    api_key: str = Depends(verify_api_key)
):
    """Record that the privacy prompt was accepted"""
    controller.accept_privacy_prompt()
    return _respond(controller, tracking)


@router.post("/anchors", response_model=SetAnchorResponse)
def set_anchor(
    controller: SessionController = Depends(get_session_controller),
    tracking: RemoteTrackingSubsystem = Depends(get_remote_tracking),
    api_key: str = Depends(verify_api_key)
):
    """Place an anchor at the current camera pose"""
    if not controller.projection().place_anchor_enabled:
        raise HTTPException(status_code=409, detail="Anchors can only be set once localized")

    placed = controller.set_anchor()
    metrics.increment_counter('anchors_set_total' if placed else 'anchor_failures_total')

    return SetAnchorResponse(placed=placed, session=_respond(controller, tracking))


@router.delete("/anchors", response_model=ProjectionResponse)
def clear_anchors(
    controller: SessionController = Depends(get_session_controller),
    tracking: RemoteTrackingSubsystem = Depends(get_remote_tracking),
    api_key: str = Depends(verify_api_key)
):
    """Remove all anchors and stored history"""
    controller.clear_all()
    metrics.increment_counter('anchor_clears_total')
    return _respond(controller, tracking)


@router.get("/anchors", response_model=HistoryResponse)
def list_anchors(
    controller: SessionController = Depends(get_session_controller),
    api_key: str = Depends(verify_api_key)
):
    """List the anchor history"""
    anchors = [AnchorResponse.from_record(record) for record in controller.history]
    return HistoryResponse(count=len(anchors), anchors=anchors)
