"""Tests for typed node payload decoding."""

import pytest

from weatherflow.core.exceptions import ParseError, UnknownNodeTypeError, ValidationError
from weatherflow.models.node_data import (
    ConditionNodeData,
    EmailNodeData,
    FormNodeData,
    IntegrationNodeData,
    StartNodeData,
    infer_node_data,
    parse_and_validate_node_data,
    parse_node_data,
)


class TestParseNodeData:
    """Dispatch on the node's type tag."""

    def test_form_payload(self):
        data = parse_node_data("form", {
            "label": "User Input",
            "metadata": {"inputFields": ["name", "email", "city"]},
        })

        assert isinstance(data, FormNodeData)
        assert data.label == "User Input"
        assert data.metadata.input_fields == ["name", "email", "city"]

    def test_integration_payload(self):
        data = parse_node_data("integration", {
            "metadata": {
                "apiEndpoint": "https://example.com?lat={lat}&lon={lon}",
                "options": [{"city": "Perth", "lat": -31.9505, "lon": 115.8605}],
            },
        })

        assert isinstance(data, IntegrationNodeData)
        assert data.metadata.options[0].city == "Perth"

    def test_condition_handles_accept_branch_tags(self):
        data = parse_node_data("condition", {
            "metadata": {
                "hasHandles": {"source": ["true", "false"], "target": True},
                "conditionExpression": "temperature {{operator}} {{threshold}}",
            },
        })

        assert isinstance(data, ConditionNodeData)
        assert data.metadata.has_handles.source == ["true", "false"]

    def test_missing_payload_is_empty(self):
        data = parse_node_data("start", None)
        assert isinstance(data, StartNodeData)
        assert data.label == ""

    def test_unknown_type(self):
        with pytest.raises(UnknownNodeTypeError) as exc_info:
            parse_node_data("webhook", {})
        assert str(exc_info.value) == "unknown node type: webhook"

    def test_wrong_shape(self):
        with pytest.raises(ParseError) as exc_info:
            parse_node_data("form", {"metadata": {"inputFields": "name"}})
        assert str(exc_info.value).startswith("invalid form node data:")

    def test_non_object_payload(self):
        with pytest.raises(ParseError):
            parse_node_data("end", ["not", "an", "object"])

    def test_type_tag_mismatch(self):
        with pytest.raises(ParseError) as exc_info:
            parse_node_data("form", {"type": "email"})
        assert str(exc_info.value) == "node data type 'email' does not match node type 'form'"


class TestStructuralValidation:
    """Kind-specific business rules."""

    def test_form_requires_fields(self):
        with pytest.raises(ValidationError, match="at least one input field"):
            parse_and_validate_node_data("form", {"metadata": {}})

    def test_integration_requires_endpoint(self):
        with pytest.raises(ValidationError, match="API endpoint"):
            parse_and_validate_node_data("integration", {"metadata": {"apiEndpoint": "  "}})

    def test_condition_requires_expression(self):
        with pytest.raises(ValidationError, match="condition expression"):
            parse_and_validate_node_data("condition", {})

    def test_email_requires_subject_and_body(self):
        with pytest.raises(ValidationError, match="subject"):
            parse_and_validate_node_data("email", {"metadata": {"emailTemplate": {"body": "x"}}})
        with pytest.raises(ValidationError, match="body"):
            parse_and_validate_node_data("email", {"metadata": {"emailTemplate": {"subject": "x"}}})

    def test_start_and_end_always_valid(self):
        parse_and_validate_node_data("start", {})
        parse_and_validate_node_data("end", {})


class TestInferNodeData:
    """Decoding payloads that arrive without their node type."""

    def test_explicit_tag_wins(self):
        data = infer_node_data({
            "type": "email",
            "metadata": {"emailTemplate": {"subject": "Hi", "body": "Body"}},
        })
        assert isinstance(data, EmailNodeData)

    def test_metadata_keys_select_variant(self):
        data = infer_node_data({"metadata": {"conditionExpression": "temperature > 5"}})
        assert isinstance(data, ConditionNodeData)

    def test_empty_payload_is_start(self):
        assert isinstance(infer_node_data({}), StartNodeData)

    def test_no_variant_matches(self):
        with pytest.raises(ParseError, match="does not match any known node type"):
            infer_node_data({"metadata": {"somethingElse": 1}})
