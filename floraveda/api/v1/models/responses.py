"""
API response models using Pydantic.
"""
from typing import List, Optional

from pydantic import Field, computed_field

from floraveda.domain.models import AppState, CamelModel, ChatTurn, PlantReport
from floraveda.services.application.consultation_service import ConsultationService
from floraveda.utils.report_formatting import guide_steps


class ConsultationResponse(CamelModel):
    """Snapshot of a consultation for the presentation layer."""
    consultation_id: str = Field(
        description="Unique identifier for the consultation"
    )
    state: AppState = Field(
        description="Current state of the consultation flow"
    )
    image_preview: str = Field(
        default="",
        description="Data URL of the uploaded photo, empty without a photo"
    )
    country: str = ""
    plant_report: Optional[PlantReport] = None
    transcript: List[ChatTurn] = Field(default_factory=list)
    is_typing: bool = False
    error_message: str = ""

    @computed_field(alias="guideSteps")
    @property
    def guide_steps(self) -> List[str]:
        """Step-by-step guide without the 'Point N:' markers."""
        if self.plant_report is None:
            return []
        return guide_steps(self.plant_report.step_by_step_guide)

    @classmethod
    def from_consultation(
        cls,
        consultation_id: str,
        consultation: ConsultationService,
    ) -> "ConsultationResponse":
        return cls(
            consultation_id=consultation_id,
            state=consultation.state,
            image_preview=consultation.image_preview,
            country=consultation.country,
            plant_report=consultation.plant_report,
            transcript=consultation.transcript,
            is_typing=consultation.is_typing,
            error_message=consultation.error_message,
        )
