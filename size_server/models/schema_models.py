from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class BoonKind(str, Enum):
    blessed = "Blessed"
    cursed = "Cursed"


class Identity(BaseModel):
    """Canonical user as returned by the identity provider.

    Two identities are the same user when their ids match, whatever the
    display name says.
    """

    id: str
    display_name: str

    class Config:
        frozen = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return self.display_name


class Bounds(BaseModel):
    lower: int = 1
    upper: int = 100


class LastChecked(BaseModel):
    streamer: Identity
    timestamp: datetime
    limit_seconds: Optional[int] = None
    cached_size: int = 0


class BoonLength(BaseModel):
    anchor: datetime
    length_seconds: int


class Boon(BaseModel):
    kind: BoonKind
    fixed_value: Optional[int] = None
    duration: Optional[BoonLength] = None


class ChannelStatus(BaseModel):
    bounds: Bounds = Field(default_factory=Bounds)
    viewer_boons: Dict[Identity, Boon] = Field(default_factory=dict)
    active_boon: Optional[Boon] = None
