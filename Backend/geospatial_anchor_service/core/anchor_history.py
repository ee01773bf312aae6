"""
Anchor History Models
Geospatial anchor records and their persisted JSON layout
"""

from typing import Dict, List, Iterable, Iterator, Any
from datetime import datetime
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass(frozen=True)
class AnchorRecord:
    """A user-placed geospatial anchor"""
    latitude: float
    longitude: float
    altitude: float
    heading: float
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Validate anchor coordinates"""
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError("Latitude must be between -90 and 90 degrees")

        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError("Longitude must be between -180 and 180 degrees")

        if not (0.0 <= self.heading <= 360.0):
            raise ValueError("Heading must be between 0 and 360 degrees")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'altitude': self.altitude,
            'heading': self.heading,
            'created_at': self.created_at.isoformat()
        }


class HistoryCollection:
    """Ordered collection of anchor records"""

    def __init__(self, records: Iterable[AnchorRecord] = ()):
        self.records: List[AnchorRecord] = list(records)

    def add(self, record: AnchorRecord):
        self.records.append(record)

    def clear(self):
        self.records.clear()

    def newest_first(self, limit: int = None) -> "HistoryCollection":
        """Copy sorted from latest record to earliest, optionally truncated"""
        ordered = sorted(self.records, key=lambda record: record.created_at, reverse=True)
        if limit is not None and len(ordered) > limit:
            ordered = ordered[:limit]
        return HistoryCollection(ordered)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[AnchorRecord]:
        return iter(self.records)

    def __bool__(self) -> bool:
        return bool(self.records)

    def __eq__(self, other) -> bool:
        if not isinstance(other, HistoryCollection):
            return NotImplemented
        return self.records == other.records

    def __repr__(self) -> str:
        return f"HistoryCollection({self.records!r})"


# Persisted layout

class StoredAnchor(BaseModel):
    """One anchor inside the persisted blob"""
    model_config = ConfigDict(populate_by_name=True)

    latitude: float = Field(..., ge=-90.0, le=90.0, alias="Latitude")
    longitude: float = Field(..., ge=-180.0, le=180.0, alias="Longitude")
    altitude: float = Field(..., alias="Altitude")
    heading: float = Field(..., ge=0.0, le=360.0, alias="Heading")
    created_at: datetime = Field(..., alias="CreatedTime")

    @field_validator('created_at')
    @classmethod
    def to_local_time(cls, value: datetime) -> datetime:
        """Store naive local times; offsets and epochs are converted"""
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @classmethod
    def from_record(cls, record: AnchorRecord) -> "StoredAnchor":
        return cls(
            latitude=record.latitude,
            longitude=record.longitude,
            altitude=record.altitude,
            heading=record.heading,
            created_at=record.created_at
        )

    def to_record(self) -> AnchorRecord:
        return AnchorRecord(
            latitude=self.latitude,
            longitude=self.longitude,
            altitude=self.altitude,
            heading=self.heading,
            created_at=self.created_at
        )


class StoredHistory(BaseModel):
    """Persisted anchor history blob"""
    model_config = ConfigDict(populate_by_name=True)

    collection: List[StoredAnchor] = Field(default_factory=list, alias="Collection")

    @classmethod
    def from_collection(cls, collection: HistoryCollection) -> "StoredHistory":
        return cls(collection=[StoredAnchor.from_record(record) for record in collection])

    def to_collection(self) -> HistoryCollection:
        return HistoryCollection(stored.to_record() for stored in self.collection)


def serialize_history(collection: HistoryCollection) -> str:
    """Serialize a collection to the persisted JSON blob"""
    return StoredHistory.from_collection(collection).model_dump_json(by_alias=True)


def deserialize_history(blob: str) -> HistoryCollection:
    """Parse a persisted JSON blob; raises pydantic.ValidationError when corrupt"""
    return StoredHistory.model_validate_json(blob).to_collection()
