"""
Domain models for plant reports, analysis input and chat turns.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, HTTP routing, etc.).
Report fields use camelCase on the wire, matching the structured output
requested from the model.
"""
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from floraveda.domain.exceptions import AnalysisInputError
from floraveda.infrastructure.api_constants import GeminiConstants


class Direction(str, Enum):
    """The eight compass directions used for Vastu placement."""
    NORTH = "North"
    NORTH_EAST = "North-East"
    EAST = "East"
    SOUTH_EAST = "South-East"
    SOUTH = "South"
    SOUTH_WEST = "South-West"
    WEST = "West"
    NORTH_WEST = "North-West"


class HealthStatus(str, Enum):
    HEALTHY = "HEALTHY"
    NEEDS_ATTENTION = "NEEDS_ATTENTION"
    SICK = "SICK"


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


class AppState(str, Enum):
    """States of a consultation flow."""
    UPLOAD = "UPLOAD"
    ANALYZING = "ANALYZING"
    RESULTS = "RESULTS"
    ERROR = "ERROR"


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ReportModel(CamelModel):
    """Immutable part of a plant report."""

    class Config:
        frozen = True


class CareInstructions(ReportModel):
    water: str = Field(min_length=1)
    sunlight: str = Field(min_length=1)
    temperature: str = Field(min_length=1)
    soil: str = Field(min_length=1)
    fertilizer: str = Field(min_length=1)
    pruning: Optional[str] = None


class VastuDetails(ReportModel):
    best_directions: List[Direction]
    avoid_directions: List[Direction]
    energy_type: str
    placement_reason: str


class HealthAssessment(ReportModel):
    """Plant pathologist's view of the photographed plant."""
    status: HealthStatus
    issues: List[str]
    remedy: str
    detailed_diagnosis: str
    actionable_steps: List[str]
    potential_pests: List[str]
    confidence: int = Field(ge=0, le=100, description="Confidence of the diagnosis (0-100)")


class PlantReport(ReportModel):
    """Structured result of one analysis call."""
    is_match: bool
    verification_message: str
    common_name: str
    scientific_name: str
    short_description: str
    care_instructions: CareInstructions
    fun_fact: str
    toxicity: str
    vastu_tips: str
    vastu_details: VastuDetails
    step_by_step_guide: List[str] = Field(
        description="Beginner guide, items prefixed 'Point N: '"
    )
    health_assessment: HealthAssessment


class ChatTurn(CamelModel):
    """One message of a chat transcript."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: ChatRole
    text: str = ""
    is_loading: bool = False
    is_error: bool = False


@dataclass
class AnalysisInput:
    """
    Input of a single analysis request.

    Blank strings and empty bytes are treated as absent. Without an image a
    plant name is required, since the model has nothing else to go on.

    Raises:
        AnalysisInputError: If the country is missing, or neither an image
            nor a plant name is supplied, or the image type is not image/*
    """
    country: str
    image_bytes: Optional[bytes] = None
    claimed_name: Optional[str] = None
    image_mime_type: str = GeminiConstants.DEFAULT_IMAGE_MIME_TYPE

    def __post_init__(self):
        self.country = (self.country or "").strip()
        self.claimed_name = (self.claimed_name or "").strip() or None
        self.image_bytes = self.image_bytes or None

        if not self.country:
            raise AnalysisInputError("Please enter your country.")
        if self.image_bytes is None and self.claimed_name is None:
            raise AnalysisInputError("Please enter a plant name to search without a photo.")
        if self.image_bytes is not None and not self.image_mime_type.startswith("image/"):
            raise AnalysisInputError(f"Unsupported file type '{self.image_mime_type}', expected an image.")

    @property
    def has_image(self) -> bool:
        return self.image_bytes is not None
