"""
Pydantic models for API requests and responses
Contracts between the AR client and the geospatial session
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from geospatial_anchor_service.core.anchor_history import AnchorRecord
from geospatial_anchor_service.core.remote_tracking import ClientCommand
from geospatial_anchor_service.core.session_controller import UiProjection
from geospatial_anchor_service.core.tracking_models import (
    EarthState,
    FeatureSupport,
    GeospatialPose,
    LocationServiceStatus,
    SessionState,
    TrackingSnapshot,
    TrackingState
)


class PoseModel(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    altitude: float = 0.0
    heading: float = 0.0
    horizontal_accuracy: float = Field(0.0, ge=0.0, description="Meters")
    vertical_accuracy: float = Field(0.0, ge=0.0, description="Meters")
    heading_accuracy: float = Field(0.0, ge=0.0, description="Degrees")

    def to_pose(self) -> GeospatialPose:
        return GeospatialPose(**self.model_dump())


class SnapshotModel(BaseModel):
    session_state: SessionState
    feature_support: FeatureSupport = FeatureSupport.UNKNOWN
    feature_mode_enabled: bool = False
    earth_state: EarthState = EarthState.ENABLED
    earth_tracking_state: TrackingState = TrackingState.NOT_TRACKING
    pose: Optional[PoseModel] = None
    location_status: LocationServiceStatus = LocationServiceStatus.RUNNING

    def to_snapshot(self) -> TrackingSnapshot:
        return TrackingSnapshot(
            session_state=self.session_state,
            feature_support=self.feature_support,
            feature_mode_enabled=self.feature_mode_enabled,
            earth_state=self.earth_state,
            earth_tracking_state=self.earth_tracking_state,
            pose=self.pose.to_pose() if self.pose else None,
            location_status=self.location_status
        )


class TickRequest(BaseModel):
    elapsed: float = Field(..., ge=0.0, description="Seconds since the previous tick")
    snapshot: SnapshotModel


class ProjectionResponse(BaseModel):
    message: str
    place_anchor_enabled: bool
    clear_all_enabled: bool
    info_panel_visible: bool
    info_text: str
    keep_screen_awake: bool
    classification: str
    in_ar_view: bool
    terminating: bool
    debug_text: Optional[str] = None
    commands: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def build(cls, projection: UiProjection,
              commands: List[ClientCommand] = ()) -> "ProjectionResponse":
        return cls(
            message=projection.message,
            place_anchor_enabled=projection.place_anchor_enabled,
            clear_all_enabled=projection.clear_all_enabled,
            info_panel_visible=projection.info_panel_visible,
            info_text=projection.info_text,
            keep_screen_awake=projection.keep_screen_awake,
            classification=projection.classification.value,
            in_ar_view=projection.in_ar_view,
            terminating=projection.terminating,
            debug_text=projection.debug_text,
            commands=[command.to_dict() for command in commands]
        )


class AnchorResponse(BaseModel):
    latitude: float
    longitude: float
    altitude: float
    heading: float
    created_at: str

    @classmethod
    def from_record(cls, record: AnchorRecord) -> "AnchorResponse":
        return cls(**record.to_dict())


class HistoryResponse(BaseModel):
    count: int
    anchors: List[AnchorResponse]


class SetAnchorResponse(BaseModel):
    placed: bool
    session: ProjectionResponse
