"""
Structured-output contract for the plant analysis call.

The contract is a plain declarative mapping of field name to
``{type, required, description, enum, items, properties, minimum, maximum}``.
It is used twice:

- converted to a Gemini ``response_schema`` so the model output is constrained
- walked over the returned payload to reject responses missing required fields

Types use the Gemini schema type names (OBJECT, STRING, ARRAY, BOOLEAN, INTEGER).
"""
import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from floraveda.domain.exceptions import MalformedResponseError
from floraveda.domain.models import Direction, HealthStatus, PlantReport

logger = logging.getLogger(__name__)

DIRECTION_VALUES = [direction.value for direction in Direction]
HEALTH_STATUS_VALUES = [status.value for status in HealthStatus]

# Keys copied verbatim into the provider schema
_SCHEMA_KEYS = ("type", "description", "enum", "minimum", "maximum")


def _string(description: str, required: bool = True) -> Dict[str, Any]:
    return {"type": "STRING", "required": required, "description": description}


def _string_list(description: str, enum: List[str] = None) -> Dict[str, Any]:
    items: Dict[str, Any] = {"type": "STRING"}
    if enum:
        items["enum"] = list(enum)
    return {"type": "ARRAY", "required": True, "description": description, "items": items}


CARE_INSTRUCTIONS_CONTRACT: Dict[str, Dict[str, Any]] = {
    "water": _string("Watering frequency and advice."),
    "sunlight": _string("Sunlight exposure requirements."),
    "temperature": _string("Ideal temperature range."),
    "soil": _string("Soil type preferences."),
    "fertilizer": _string("Fertilizer recommendations."),
    "pruning": _string("Pruning advice (optional).", required=False),
}

VASTU_DETAILS_CONTRACT: Dict[str, Dict[str, Any]] = {
    "bestDirections": _string_list(
        "Optimal placement directions, chosen from the eight compass directions.",
        enum=DIRECTION_VALUES,
    ),
    "avoidDirections": _string_list(
        "Directions to avoid, chosen from the eight compass directions.",
        enum=DIRECTION_VALUES,
    ),
    "energyType": _string("Type of energy this plant brings (e.g. 'Wealth', 'Calm', 'Health')."),
    "placementReason": _string("Why these directions are recommended."),
}

HEALTH_ASSESSMENT_CONTRACT: Dict[str, Dict[str, Any]] = {
    "status": {
        "type": "STRING",
        "required": True,
        "enum": HEALTH_STATUS_VALUES,
        "description": (
            "Health verdict from visual evidence. A vibrant plant with no spots "
            "or yellowing is HEALTHY."
        ),
    },
    "issues": _string_list(
        "Visual symptoms (e.g. 'Yellow leaves', 'Brown spots', 'Drooping'). Empty if healthy."
    ),
    "remedy": _string("Brief summary of the cure or maintenance."),
    "detailedDiagnosis": _string(
        "What the condition is, why it is likely happening and what to look for."
    ),
    "actionableSteps": _string_list(
        "Checklist of actions to take now (e.g. 'Isolate the plant', 'Apply neem oil')."
    ),
    "potentialPests": _string_list(
        "Pests detected or suspected (e.g. 'Spider Mites', 'Mealybugs'). Empty if none."
    ),
    "confidence": {
        "type": "INTEGER",
        "required": True,
        "minimum": 0,
        "maximum": 100,
        "description": "Confidence score (0-100) of the health diagnosis.",
    },
}

PLANT_REPORT_CONTRACT: Dict[str, Dict[str, Any]] = {
    "isMatch": {
        "type": "BOOLEAN",
        "required": True,
        "description": "True if the plant is identified. False if ambiguous or a mismatch.",
    },
    "verificationMessage": _string("Explanation of the identification or mismatch."),
    "commonName": _string("Common name of the identified plant."),
    "scientificName": _string("Scientific name of the plant."),
    "shortDescription": _string("A brief, engaging description (2-3 sentences)."),
    "careInstructions": {
        "type": "OBJECT",
        "required": True,
        "description": "Care instructions localized to the user's climate.",
        "properties": CARE_INSTRUCTIONS_CONTRACT,
    },
    "funFact": _string("An interesting fact."),
    "toxicity": _string("Toxicity information for people and pets."),
    "vastuTips": _string("General summary of Vastu Shastra advice."),
    "vastuDetails": {
        "type": "OBJECT",
        "required": True,
        "description": "Structured Vastu placement advice.",
        "properties": VASTU_DETAILS_CONTRACT,
    },
    "stepByStepGuide": _string_list(
        "Beginner guide covering placement, watering and care, formatted as 'Point 1: ...', 'Point 2: ...'."
    ),
    "healthAssessment": {
        "type": "OBJECT",
        "required": True,
        "description": "Plant pathologist's health assessment.",
        "properties": HEALTH_ASSESSMENT_CONTRACT,
    },
}


def to_provider_schema(contract: Dict[str, Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Convert a contract into a Gemini response schema.

    Args:
        contract: Field mapping, defaults to the plant report contract

    Returns:
        Schema dictionary accepted as ``response_schema``
    """
    contract = PLANT_REPORT_CONTRACT if contract is None else contract
    return {
        "type": "OBJECT",
        "properties": {name: _field_schema(spec) for name, spec in contract.items()},
        "required": [name for name, spec in contract.items() if spec.get("required")],
    }


def _field_schema(spec: Dict[str, Any]) -> Dict[str, Any]:
    if spec["type"] == "OBJECT":
        schema = to_provider_schema(spec["properties"])
        if "description" in spec:
            schema["description"] = spec["description"]
        return schema

    schema = {key: spec[key] for key in _SCHEMA_KEYS if key in spec}
    if "items" in spec:
        schema["items"] = _field_schema(spec["items"])
    return schema


def missing_required_fields(
    payload: Dict[str, Any],
    contract: Dict[str, Dict[str, Any]] = None,
    prefix: str = "",
) -> List[str]:
    """
    List the required fields absent from a payload, as dotted paths.

    A field explicitly set to null counts as absent. Nested objects are
    only inspected when present.
    """
    contract = PLANT_REPORT_CONTRACT if contract is None else contract
    missing = []
    for name, spec in contract.items():
        path = f"{prefix}{name}"
        value = payload.get(name)
        if value is None:
            if spec.get("required"):
                missing.append(path)
            continue
        if spec["type"] == "OBJECT" and isinstance(value, dict):
            missing.extend(missing_required_fields(value, spec["properties"], prefix=f"{path}."))
    return missing


def parse_plant_report(json_text: str) -> PlantReport:
    """
    Parse a model response into a PlantReport.

    Args:
        json_text: Raw JSON text returned by the model

    Returns:
        Parsed PlantReport, unmodified

    Raises:
        MalformedResponseError: If the text is not a JSON object, a required
            field is missing or a field has the wrong type
    """
    try:
        payload = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Response is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    missing = missing_required_fields(payload)
    if missing:
        raise MalformedResponseError(f"Missing required fields: {', '.join(missing)}")

    try:
        return PlantReport.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"Report validation failed: {e}")
        raise MalformedResponseError(
            f"Response does not match the report schema: {e.error_count()} error(s)"
        ) from e
