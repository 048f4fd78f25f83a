"""Typed node payloads, one variant per node kind."""

from typing import Any, ClassVar, Dict, List, Optional, Type, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..core.exceptions import ParseError, UnknownNodeTypeError, ValidationError


NODE_TYPE_START = "start"
NODE_TYPE_FORM = "form"
NODE_TYPE_INTEGRATION = "integration"
NODE_TYPE_CONDITION = "condition"
NODE_TYPE_EMAIL = "email"
NODE_TYPE_END = "end"

# Priority order used when a payload arrives without a node type
NODE_TYPE_PRIORITY = [
    NODE_TYPE_START,
    NODE_TYPE_FORM,
    NODE_TYPE_INTEGRATION,
    NODE_TYPE_CONDITION,
    NODE_TYPE_EMAIL,
    NODE_TYPE_END,
]


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HandleSpec(CamelModel):
    """Connection handles shown by the editor."""
    source: Optional[Union[bool, List[str]]] = Field(None, description="Source handle flag or branch tags")
    target: Optional[bool] = Field(None, description="Whether the node accepts incoming edges")


class LocationOption(CamelModel):
    """A selectable city with its coordinates."""
    city: str = Field(..., description="Canonical city name")
    lat: float = Field(..., description="Latitude")
    lon: float = Field(..., description="Longitude")


class EmailTemplate(CamelModel):
    """Subject and body with {{variable}} placeholders."""
    subject: str = Field("", description="Subject template")
    body: str = Field("", description="Body template")


class StartMetadata(CamelModel):
    has_handles: Optional[HandleSpec] = None
    output_variables: List[str] = Field(default_factory=list)


class FormMetadata(CamelModel):
    has_handles: Optional[HandleSpec] = None
    input_fields: List[str] = Field(default_factory=list)
    output_variables: List[str] = Field(default_factory=list)


class IntegrationMetadata(CamelModel):
    has_handles: Optional[HandleSpec] = None
    input_variables: List[str] = Field(default_factory=list)
    api_endpoint: str = ""
    options: List[LocationOption] = Field(default_factory=list)
    output_variables: List[str] = Field(default_factory=list)


class ConditionMetadata(CamelModel):
    has_handles: Optional[HandleSpec] = None
    condition_expression: str = ""
    output_variables: List[str] = Field(default_factory=list)


class EmailMetadata(CamelModel):
    has_handles: Optional[HandleSpec] = None
    input_variables: List[str] = Field(default_factory=list)
    email_template: EmailTemplate = Field(default_factory=EmailTemplate)
    output_variables: List[str] = Field(default_factory=list)


class EndMetadata(CamelModel):
    has_handles: Optional[HandleSpec] = None
    input_variables: List[str] = Field(default_factory=list)


class NodeData(CamelModel):
    """Fields shared by every node payload."""
    node_kind: ClassVar[str] = ""

    type: Optional[str] = Field(None, description="Explicit type tag, must match the node type")
    label: str = Field("", description="Display label")
    description: str = Field("", description="Display description")

    def validate_structure(self) -> None:
        """Check kind-specific business rules. Raises ValidationError."""


class StartNodeData(NodeData):
    node_kind: ClassVar[str] = NODE_TYPE_START
    metadata: StartMetadata = Field(default_factory=StartMetadata)


class FormNodeData(NodeData):
    node_kind: ClassVar[str] = NODE_TYPE_FORM
    metadata: FormMetadata = Field(default_factory=FormMetadata)

    def validate_structure(self) -> None:
        if not self.metadata.input_fields:
            raise ValidationError("form node must have at least one input field")


class IntegrationNodeData(NodeData):
    node_kind: ClassVar[str] = NODE_TYPE_INTEGRATION
    metadata: IntegrationMetadata = Field(default_factory=IntegrationMetadata)

    def validate_structure(self) -> None:
        if not self.metadata.api_endpoint.strip():
            raise ValidationError("integration node must have an API endpoint")


class ConditionNodeData(NodeData):
    node_kind: ClassVar[str] = NODE_TYPE_CONDITION
    metadata: ConditionMetadata = Field(default_factory=ConditionMetadata)

    def validate_structure(self) -> None:
        if not self.metadata.condition_expression.strip():
            raise ValidationError("condition node must have a condition expression")


class EmailNodeData(NodeData):
    node_kind: ClassVar[str] = NODE_TYPE_EMAIL
    metadata: EmailMetadata = Field(default_factory=EmailMetadata)

    def validate_structure(self) -> None:
        template = self.metadata.email_template
        if not template.subject.strip():
            raise ValidationError("email node must have a subject")
        if not template.body.strip():
            raise ValidationError("email node must have a body")


class EndNodeData(NodeData):
    node_kind: ClassVar[str] = NODE_TYPE_END
    metadata: EndMetadata = Field(default_factory=EndMetadata)


NODE_DATA_TYPES: Dict[str, Type[NodeData]] = {
    cls.node_kind: cls
    for cls in (
        StartNodeData,
        FormNodeData,
        IntegrationNodeData,
        ConditionNodeData,
        EmailNodeData,
        EndNodeData,
    )
}


def _describe_pydantic_error(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(piece) for piece in item.get("loc", ())) or "data"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def parse_node_data(node_type: str, raw: Optional[Dict[str, Any]]) -> NodeData:
    """
    Decode a raw payload into the variant selected by the node's type tag.

    Args:
        node_type: The node's type tag
        raw: The raw data mapping (None is treated as an empty payload)

    Returns:
        The typed node data

    Raises:
        UnknownNodeTypeError: If no variant exists for the tag
        ParseError: If the payload does not fit the variant
    """
    data_class = NODE_DATA_TYPES.get(node_type)
    if data_class is None:
        raise UnknownNodeTypeError(node_type)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ParseError(
            f"invalid {node_type} node data: expected an object, got {type(raw).__name__}",
            node_type=node_type
        )

    try:
        data = data_class.model_validate(raw)
    except PydanticValidationError as e:
        raise ParseError(
            f"invalid {node_type} node data: {_describe_pydantic_error(e)}",
            node_type=node_type
        ) from e

    if data.type and data.type != node_type:
        raise ParseError(
            f"node data type '{data.type}' does not match node type '{node_type}'",
            node_type=node_type
        )

    return data


def parse_and_validate_node_data(node_type: str, raw: Optional[Dict[str, Any]]) -> NodeData:
    """Parse a payload and run its kind-specific structural checks."""
    data = parse_node_data(node_type, raw)
    data.validate_structure()
    return data


def _metadata_keys(data_class: Type[NodeData]) -> set:
    metadata_class = data_class.model_fields["metadata"].annotation
    keys = set()
    for name, field in metadata_class.model_fields.items():
        keys.add(name)
        keys.add(field.alias or name)
    return keys


def infer_node_data(raw: Dict[str, Any]) -> NodeData:
    """
    Decode a payload whose node type is not known.

    An explicit "type" tag in the payload wins. Otherwise each variant is tried
    in NODE_TYPE_PRIORITY order; the first one whose metadata keys cover the
    payload and which parses and validates is returned.

    Raises:
        ParseError: If no variant accepts the payload
    """
    if not isinstance(raw, dict):
        raise ParseError(f"node data must be an object, got {type(raw).__name__}")

    explicit_type = raw.get("type")
    if isinstance(explicit_type, str) and explicit_type:
        return parse_and_validate_node_data(explicit_type, raw)

    metadata = raw.get("metadata") or {}
    payload_keys = set(metadata.keys()) if isinstance(metadata, dict) else set()

    for node_type in NODE_TYPE_PRIORITY:
        data_class = NODE_DATA_TYPES[node_type]
        if not payload_keys <= _metadata_keys(data_class):
            continue
        try:
            return parse_and_validate_node_data(node_type, raw)
        except (ParseError, ValidationError):
            continue

    raise ParseError("node data does not match any known node type")
