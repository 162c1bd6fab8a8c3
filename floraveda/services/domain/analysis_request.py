"""
Domain service: multimodal prompt construction for the plant analysis call.

The request is made of zero or one inline image part and exactly one text
directive part. Which identification directive is used depends on whether
an image and a claimed plant name were supplied.
"""
from dataclasses import dataclass
from textwrap import dedent
from typing import List

from google.genai import types

from floraveda.domain.models import AnalysisInput
from floraveda.domain.schema_contract import DIRECTION_VALUES


PERSONA_INSTRUCTION = (
    "You are an expert botanist and Vastu Shastra consultant. Identify plants accurately. "
    "Act as 'Dr. Green', a professional plant pathologist, when filling out the healthAssessment."
)

TEXT_ONLY_VERIFICATION_MESSAGE = "Care instructions generated for {name}."

LOCATION_DIRECTIVE = 'The user is currently in this country: "{country}".'

CLAIMED_NAME_DIRECTIVE = dedent("""\
    The user says the plant in the image is: "{name}".
    1. Identify the plant in the image.
    2. Compare your identification with the claimed name ("{name}").
    3. If the image reasonably matches the claimed name (synonyms and broad categories are fine), set 'isMatch' to true.
    4. Set 'isMatch' to false only if the image is CLEARLY a different plant.""")

UNNAMED_IMAGE_DIRECTIVE = dedent("""\
    The user has NOT provided a plant name.
    1. Identify the plant in the image.
    2. If you can identify it with high confidence, set 'isMatch' to true.
    3. If the image is too blurry, generic or ambiguous (it could be several distinct plants) to be sure, set 'isMatch' to false.""")

TEXT_ONLY_DIRECTIVE = dedent("""\
    NO IMAGE PROVIDED. The user wants information about the plant named: "{name}".
    1. Assume the user's identification is correct.
    2. Set 'isMatch' to true.
    3. Set 'verificationMessage' to "{verification}"
    4. Provide details for "{name}".""")

REPORT_DIRECTIVE = dedent("""\
    5. Provide detailed care instructions optimized for the climate in "{country}".
    6. Provide specific Vastu Shastra advice. You must populate 'vastuDetails' with directions chosen only from: {directions}.
    7. Provide a 'stepByStepGuide' explaining everything a beginner needs in simple English, formatted as "Point 1: ...", "Point 2: ...", etc.
    8. PLANT DOCTOR DIAGNOSIS - fill in the complete 'healthAssessment':
       - Analyze the visual evidence in the image for health issues (color, texture, spots, drooping).
       - If no image is provided, set status to 'HEALTHY' and 'actionableSteps' to general preventive maintenance. Do not invent visual symptoms.
       - If the plant is SICK or NEEDS_ATTENTION:
         - Name specific pests if visible (e.g. Mealybugs, Scale, Spider Mites).
         - Explain the root cause in 'detailedDiagnosis'.
         - Give 3-5 specific 'actionableSteps' for treatment (e.g. "Quarantine the plant", "Wipe leaves with alcohol").""")


@dataclass
class AnalysisRequest:
    """Parts and persona instruction for one analysis call."""
    parts: List[types.Part]
    system_instruction: str

    @property
    def directive(self) -> str:
        """Text of the directive part."""
        return self.parts[-1].text


def build_analysis_request(analysis_input: AnalysisInput) -> AnalysisRequest:
    """
    Build the multimodal request for an analysis input.

    Args:
        analysis_input: Validated analysis input

    Returns:
        AnalysisRequest with the image part (if any) followed by the directive
    """
    parts: List[types.Part] = []
    if analysis_input.has_image:
        parts.append(
            types.Part.from_bytes(
                data=analysis_input.image_bytes,
                mime_type=analysis_input.image_mime_type,
            )
        )

    directive = "\n".join([
        LOCATION_DIRECTIVE.format(country=analysis_input.country),
        _identification_directive(analysis_input),
        REPORT_DIRECTIVE.format(
            country=analysis_input.country,
            directions=", ".join(DIRECTION_VALUES),
        ),
    ])
    parts.append(types.Part.from_text(text=directive))

    return AnalysisRequest(parts=parts, system_instruction=PERSONA_INSTRUCTION)


def _identification_directive(analysis_input: AnalysisInput) -> str:
    name = analysis_input.claimed_name

    if analysis_input.has_image and name:
        return CLAIMED_NAME_DIRECTIVE.format(name=name)
    if analysis_input.has_image:
        return UNNAMED_IMAGE_DIRECTIVE

    return TEXT_ONLY_DIRECTIVE.format(
        name=name,
        verification=TEXT_ONLY_VERIFICATION_MESSAGE.format(name=name),
    )
