from typing import Optional, List, Dict
from pydantic import BaseModel, Field, field_validator

COORD_DECIMALS = 7


def _round_coord(v: float) -> float:
    return round(float(v), COORD_DECIMALS)


class LandmarkCreate(BaseModel):
    external_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    extract: Optional[str] = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    image_url: Optional[str] = None
    category: Optional[str] = None
    source_url: str = Field(min_length=1)

    @field_validator("latitude", "longitude")
    @classmethod
    def round_coordinates(cls, v: float) -> float:
        return _round_coord(v)


class Landmark(LandmarkCreate):
    id: str


# ----------------- Upstream (Wikipedia) response shapes -----------------
# Extra keys are ignored; required keys missing -> ValidationError, which
# the provider treats as an explicit rejection of that record.

class GeoSearchPage(BaseModel):
    pageid: int
    title: str = ""
    lat: float
    lon: float
    dist: Optional[float] = None


class GeoSearchQuery(BaseModel):
    geosearch: List[Dict] = Field(default_factory=list)


class GeoSearchResponse(BaseModel):
    query: GeoSearchQuery = Field(default_factory=GeoSearchQuery)


class Thumbnail(BaseModel):
    source: str


class PageDetail(BaseModel):
    pageid: Optional[int] = None
    title: str
    fullurl: str
    extract: Optional[str] = None
    thumbnail: Optional[Thumbnail] = None


class PageDetailQuery(BaseModel):
    pages: Dict[str, Dict] = Field(default_factory=dict)


class PageDetailResponse(BaseModel):
    query: PageDetailQuery = Field(default_factory=PageDetailQuery)
