"""
Unit tests for the plant report schema contract.

Tests cover:
- Provider schema generation
- Required field detection
- Report parsing and validation
- Serialization round trip
"""
import json

import pytest

from floraveda.domain.exceptions import MalformedResponseError
from floraveda.domain.models import Direction, HealthStatus, PlantReport
from floraveda.domain.schema_contract import (
    DIRECTION_VALUES,
    PLANT_REPORT_CONTRACT,
    missing_required_fields,
    parse_plant_report,
    to_provider_schema,
)


# ============================================================
# Provider Schema Tests
# ============================================================

class TestProviderSchema:
    """Tests for the Gemini response schema built from the contract."""

    def test_top_level_required_fields(self):
        """All top-level report fields should be required."""
        schema = to_provider_schema()

        assert schema["type"] == "OBJECT"
        assert set(schema["required"]) == set(PLANT_REPORT_CONTRACT)

    def test_pruning_is_optional(self):
        """Pruning is the only optional care field."""
        care = to_provider_schema()["properties"]["careInstructions"]

        assert care["type"] == "OBJECT"
        assert "pruning" in care["properties"]
        assert "pruning" not in care["required"]
        assert set(care["required"]) == {"water", "sunlight", "temperature", "soil", "fertilizer"}

    def test_directions_are_enum_constrained(self):
        """Vastu directions should be limited to the eight compass points."""
        vastu = to_provider_schema()["properties"]["vastuDetails"]

        for field in ("bestDirections", "avoidDirections"):
            assert vastu["properties"][field]["type"] == "ARRAY"
            assert vastu["properties"][field]["items"]["enum"] == DIRECTION_VALUES
        assert len(DIRECTION_VALUES) == 8

    def test_health_status_enum_and_confidence_bounds(self):
        """Health status is an enum and confidence is bounded."""
        health = to_provider_schema()["properties"]["healthAssessment"]["properties"]

        assert health["status"]["enum"] == ["HEALTHY", "NEEDS_ATTENTION", "SICK"]
        assert health["confidence"]["type"] == "INTEGER"
        assert health["confidence"]["minimum"] == 0
        assert health["confidence"]["maximum"] == 100

    def test_contract_bookkeeping_keys_not_sent(self):
        """The 'required' flag of a field should not leak into the provider schema."""
        schema = to_provider_schema()

        assert "required" not in schema["properties"]["commonName"]
        assert schema["properties"]["commonName"] == {
            "type": "STRING",
            "description": PLANT_REPORT_CONTRACT["commonName"]["description"],
        }

    def test_contract_matches_report_model(self):
        """Contract field names should match the report's wire names."""
        aliases = {field.alias for field in PlantReport.model_fields.values()}

        assert aliases == set(PLANT_REPORT_CONTRACT)


# ============================================================
# Required Field Tests
# ============================================================

class TestRequiredFields:
    """Tests for missing required field detection."""

    def test_complete_payload_has_no_missing_fields(self, report_payload):
        assert missing_required_fields(report_payload) == []

    def test_missing_top_level_field(self, report_payload):
        del report_payload["commonName"]

        assert missing_required_fields(report_payload) == ["commonName"]

    def test_missing_nested_field(self, report_payload):
        del report_payload["healthAssessment"]["confidence"]
        del report_payload["careInstructions"]["water"]

        missing = missing_required_fields(report_payload)

        assert "healthAssessment.confidence" in missing
        assert "careInstructions.water" in missing

    def test_null_counts_as_missing(self, report_payload):
        report_payload["vastuDetails"]["energyType"] = None

        assert missing_required_fields(report_payload) == ["vastuDetails.energyType"]

    def test_missing_optional_field_is_fine(self, report_payload):
        del report_payload["careInstructions"]["pruning"]

        assert missing_required_fields(report_payload) == []


# ============================================================
# Parsing Tests
# ============================================================

class TestParsePlantReport:
    """Tests for parsing model output into a PlantReport."""

    def test_parses_complete_report(self, report_payload):
        report = parse_plant_report(json.dumps(report_payload))

        assert report.is_match is True
        assert report.common_name == "Swiss Cheese Plant"
        assert report.vastu_details.best_directions == [Direction.NORTH, Direction.EAST]
        assert report.health_assessment.status is HealthStatus.HEALTHY
        assert report.step_by_step_guide[0] == "Point 1: Place it near an east window."

    def test_invalid_json(self):
        with pytest.raises(MalformedResponseError, match="not valid JSON"):
            parse_plant_report("{not json")

    def test_non_object_json(self):
        with pytest.raises(MalformedResponseError, match="Expected a JSON object"):
            parse_plant_report("[1, 2, 3]")

    def test_missing_required_field_is_rejected(self, report_payload):
        del report_payload["healthAssessment"]

        with pytest.raises(MalformedResponseError, match="healthAssessment"):
            parse_plant_report(json.dumps(report_payload))

    def test_empty_care_field_is_rejected(self, report_payload):
        report_payload["careInstructions"]["soil"] = ""

        with pytest.raises(MalformedResponseError):
            parse_plant_report(json.dumps(report_payload))

    def test_unknown_direction_is_rejected(self, report_payload):
        report_payload["vastuDetails"]["bestDirections"] = ["Up"]

        with pytest.raises(MalformedResponseError):
            parse_plant_report(json.dumps(report_payload))

    def test_confidence_out_of_range_is_rejected(self, report_payload):
        report_payload["healthAssessment"]["confidence"] = 150

        with pytest.raises(MalformedResponseError):
            parse_plant_report(json.dumps(report_payload))

    def test_issues_not_corrected_for_healthy_status(self, report_payload):
        """The parser returns the model output as is."""
        report_payload["healthAssessment"]["issues"] = ["Slight leaf curl"]

        report = parse_plant_report(json.dumps(report_payload))

        assert report.health_assessment.status is HealthStatus.HEALTHY
        assert report.health_assessment.issues == ["Slight leaf curl"]


# ============================================================
# Round Trip Tests
# ============================================================

class TestRoundTrip:
    """Tests for serialization without field loss."""

    def test_report_survives_serialization(self, report_payload):
        report = PlantReport.model_validate(report_payload)

        dumped = report.model_dump(by_alias=True, mode="json")

        assert dumped == report_payload
        assert PlantReport.model_validate(dumped) == report

    def test_report_is_immutable(self, sample_report):
        with pytest.raises(Exception):
            sample_report.common_name = "Something else"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
