from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class LocationInfo(BaseModel):
    city: str
    city_code: Optional[str] = None
    neighborhood: Optional[str] = None
    original_text: str = ""
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class LocationCandidate(BaseModel):
    type: Literal["city", "neighborhood"]
    name: str
    city: str
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class LocationSearchResult(BaseModel):
    cities: List[LocationCandidate] = Field(default_factory=list)
    neighborhoods: List[LocationCandidate] = Field(default_factory=list)
    best_match: Optional[LocationCandidate] = None
