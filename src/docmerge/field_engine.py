"""
FieldEngine: per-document-type field registry producing render descriptors, a JSON Schema
for validation, value normalization and the rich-value set used at export time.

Design highlights:
- One engine instance holds any number of document types (up to MAX_DOCUMENT_TYPES).
- A document type is a list of raw field records. Besides the raw schema keys
  (slug, type, title, placeholder, pattern, length, minvalue, maxvalue, parameters, ...)
  a record may carry:
    "control":   the legacy control type stored with the document type (single, textarea,
                 rich, array); empty or unknown values resolve to textarea
    "data_type": the normalized data type (number, date, boolean, ...)
- Each field is resolved once at registration into a descriptor:
    slug, label, description, control, input_type, kind, attributes, attributes_html,
    css_class, options, placeholder, validation_message, required, field_schema
  where `kind` is the input type for single-line controls and the control type otherwise.
- The JSON Schema has one property per field; every field is nullable unless required.
- Uses function registries for schema builders and validators keyed by `kind`;
  instance registrations override the module defaults.

### Usage:
```python
engine = FieldEngine()
engine.register_document_type("resolution", [
    {"slug": "title", "control": "single", "type": "text", "length": 120},
    {"slug": "body", "control": "rich", "type": "html"},
    {"slug": "kind", "control": "single", "type": "select",
     "parameters": {"options": "a:Alpha|b:Beta", "required": "yes"}},
])

is_valid, errors = engine.validate("resolution", {"title": "Hi", "kind": "a"})
values = engine.normalize_values("resolution", stored_values)
lookup = prepare_rich_lookup(engine.rich_values("resolution", stored_values))
```

Notes:
- Validator signature: `(engine, value, descriptor) -> (is_valid: bool, error: str)`
- Schema builder signature: `(engine, descriptor) -> Dict[str, Any]`
- Registration errors (missing slug, limit reached) raise ValueError; unknown document
  type names raise ValueError. Field derivation itself never raises.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional, Tuple
import re

import jsonschema
from jsonschema import Draft202012Validator as DefaultValidator

from . import config
from .docmerge_logging import create_logger
from .field_attributes import (
    build_scalar_input_attributes,
    format_field_attributes,
    get_field_description,
    get_field_title,
    get_field_validation_message,
)
from .field_renderer import build_input_class, get_select_placeholder, parse_select_options
from .field_types import (
    ControlType,
    InputType,
    is_numeric_string,
    is_truthy,
    map_single_input_type,
    normalize_scalar_value,
    resolve_field_control_type,
)
from .sanitize_text import sanitize_key


logger = create_logger(__name__)


# Function registries for schema builders and validators
_field_schema_builders_registry: Dict[str, Callable] = {}
_validator_registry: Dict[str, Callable] = {}


def _register_field_schema_builder(*kinds: str):
    """Decorator to register a schema builder function for one or more field kinds."""
    def decorator(func: Callable):
        for kind in kinds:
            _field_schema_builders_registry[kind] = func
        return func
    return decorator


def _register_validator(*kinds: str):
    """Decorator to register a validator function for one or more field kinds."""
    def decorator(func: Callable):
        for kind in kinds:
            _validator_registry[kind] = func
        return func
    return decorator


def _get_field_schema_builder(kind: str) -> Optional[Callable]:
    return _field_schema_builders_registry.get(kind)


def _get_validator(kind: str) -> Optional[Callable]:
    return _validator_registry.get(kind)


def _raw_type(raw_field: Dict[str, Any]) -> Any:
    if raw_field.get('type') is not None:
        return raw_field['type']
    params = raw_field.get('parameters')
    if isinstance(params, dict):
        return params.get('type', '')
    return ''


def build_field_descriptor(raw_field: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve a raw field record into a render descriptor.

    Raises:
        ValueError: if the record is not a dict or has no usable slug.
    """
    if not isinstance(raw_field, dict):
        raise ValueError(f"Field definition must be a dict, got {type(raw_field)}")

    slug = sanitize_key(raw_field.get('slug', ''))
    if not slug:
        raise ValueError("Field definition missing required key 'slug'")

    control = resolve_field_control_type(raw_field.get('control', ''), raw_field)
    input_type: Optional[InputType] = None
    if control == ControlType.SINGLE:
        input_type = map_single_input_type(_raw_type(raw_field), raw_field.get('data_type', ''))
    kind = input_type.value if input_type is not None else control.value

    # array is terminal: no scalar attributes or options
    attributes = {} if control == ControlType.ARRAY else build_scalar_input_attributes(raw_field, kind)
    options = parse_select_options(raw_field) if input_type == InputType.SELECT else {}
    if input_type == InputType.SELECT:
        placeholder = get_select_placeholder(raw_field)
    else:
        placeholder = attributes.get('placeholder', '')

    return {
        "slug": slug,
        "label": get_field_title(raw_field) or slug,
        "description": get_field_description(raw_field),
        "control": control,
        "input_type": input_type,
        "kind": kind,
        "attributes": attributes,
        "attributes_html": format_field_attributes(attributes),
        "css_class": build_input_class(kind),
        "options": options,
        "placeholder": placeholder,
        "validation_message": get_field_validation_message(raw_field),
        "required": 'required' in attributes,
        "field_schema": raw_field,
    }


class FieldEngine:
    """Registry of document types and the field descriptors derived from their schemas."""

    def __init__(self, max_document_types: Optional[int] = None) -> None:
        self.__max_document_types = max_document_types if max_document_types is not None else config.MAX_DOCUMENT_TYPES
        self.__instance_validator_registry: Dict[str, Callable] = {}
        self.__instance_field_schema_builder_registry: Dict[str, Callable] = {}
        # document type name -> {"descriptors": [...], "json_schema": {...}}
        self.__document_types: Dict[str, Dict[str, Any]] = {}

    # ----------------------------- Public API ---------------------------------

    def register_validator(self, kind: str, validator_func: Callable) -> None:
        """Register a custom validator for a field kind (instance-specific).

        Validator signature: func(engine, value, descriptor) -> (is_valid: bool, error: str)

        Example:
            def even_validator(engine, value, descriptor):
                if int(value) % 2:
                    return False, "Value must be even"
                return True, ""

            engine.register_validator("number", even_validator)
        """
        self.__instance_validator_registry[kind] = validator_func
        logger.debug(f"Registered instance validator for kind='{kind}'")

    def register_field_schema_builder(self, kind: str, builder_func: Callable) -> None:
        """Register a custom JSON schema builder for a field kind (instance-specific).

        Builder signature: func(engine, descriptor) -> Dict[str, Any]
        Only registrations made before register_document_type affect that document type.
        """
        self.__instance_field_schema_builder_registry[kind] = builder_func
        logger.debug(f"Registered instance schema field builder for kind='{kind}'")

    def register_document_type(self, name: str, fields: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Register (or re-register) a document type and return its field descriptors.

        Re-registration replaces the previous entry with info logging.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Document type name must be a non-empty string")
        if not isinstance(fields, list):
            raise ValueError(f"Expected a list of fields, got {type(fields)}")

        if name in self.__document_types:
            logger.info("Re-registering document type '%s'; replacing previous schema", name)
        elif len(self.__document_types) >= self.__max_document_types:
            raise ValueError(f"Maximum number of document types reached: {self.__max_document_types}")

        descriptors = [build_field_descriptor(raw_field) for raw_field in fields]
        self.__document_types[name] = {
            "descriptors": descriptors,
            "json_schema": self._build_json_schema(name, descriptors),
        }
        logger.debug(f"Registered document type '{name}' with {len(descriptors)} field(s)")
        return descriptors

    def unregister_document_type(self, name: str) -> None:
        self.__document_types.pop(name, None)

    def list_document_types(self) -> List[str]:
        return list(self.__document_types.keys())

    def clear(self) -> None:
        """Clear all registered document types."""
        self.__document_types.clear()

    def get_field_descriptors(self, name: str) -> List[Dict[str, Any]]:
        return self._get_record(name)["descriptors"]

    def get_json_schema(self, name: str) -> Dict[str, Any]:
        return self._get_record(name)["json_schema"]

    def validate(self, name: str, values: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """Validate captured values against the document type.

        Returns:
            Tuple of (is_valid, errors).
        """
        rec = self._get_record(name)

        # Step 1: JSON schema validation (structure, types, required fields, enums)
        validator = DefaultValidator(rec["json_schema"])
        errors = [self._format_validation_error(e) for e in validator.iter_errors(values)]
        if errors:
            return False, errors

        # Step 2: Custom validators (instance overrides global)
        validation_errors: List[str] = []
        self._apply_custom_validators(values, rec["descriptors"], validation_errors)
        return len(validation_errors) == 0, validation_errors

    def normalize_values(self, name: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize stored values for rendering; only single-line controls are touched."""
        normalized: Dict[str, Any] = {}
        if not isinstance(values, dict):
            return normalized

        for descriptor in self.get_field_descriptors(name):
            slug = descriptor["slug"]
            if slug not in values:
                continue
            value = values[slug]
            if descriptor["input_type"] is not None:
                value = normalize_scalar_value(value, descriptor["input_type"])
            normalized[slug] = value
        return normalized

    def rich_values(self, name: str, values: Dict[str, Any]) -> List[Any]:
        """Stored values of the document type's rich fields, in field order."""
        if not isinstance(values, dict):
            return []
        return [
            values[d["slug"]]
            for d in self.get_field_descriptors(name)
            if d["control"] == ControlType.RICH and d["slug"] in values
        ]

    # --------------------------- Internals -------------------------------------

    def _get_record(self, name: str) -> Dict[str, Any]:
        rec = self.__document_types.get(name)
        if rec is None:
            raise ValueError(f"Unknown document type: {name}")
        return rec

    def _build_json_schema(self, name: str, descriptors: List[Dict[str, Any]]) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for descriptor in descriptors:
            kind = descriptor["kind"]
            builder = self.__instance_field_schema_builder_registry.get(kind) or _get_field_schema_builder(kind)
            node = builder(self, descriptor) if builder else {"type": ["string", "null"]}
            if descriptor["required"]:
                required.append(descriptor["slug"])
                node = self._make_required(node)
            properties[descriptor["slug"]] = node

        return {
            "type": "object",
            "title": name,
            "additionalProperties": False,
            "properties": properties,
            "required": required,
        }

    @staticmethod
    def _make_required(node: Dict[str, Any]) -> Dict[str, Any]:
        node = dict(node)
        types = node.get("type")
        if isinstance(types, list):
            node["type"] = [t for t in types if t != "null"]
        if "enum" in node:
            node["enum"] = [v for v in node["enum"] if v is not None and v != ""]
        if "string" in (node.get("type") or []):
            node["minLength"] = max(1, node.get("minLength", 0))
        return node

    def _apply_custom_validators(self, values: Dict[str, Any], descriptors: List[Dict[str, Any]], errors: List[str]) -> None:
        """Apply custom validators to each present, non-null field value."""
        for descriptor in descriptors:
            slug = descriptor["slug"]
            value = values.get(slug)
            if value is None:
                continue  # Skip null values (already validated by JSON schema)

            kind = descriptor["kind"]
            validator = self.__instance_validator_registry.get(kind) or _get_validator(kind)
            if not validator:
                continue

            try:
                is_valid, error_msg = validator(self, value, descriptor)
            except Exception as e:
                logger.error(f"Validator error for {slug}: {e}")
                errors.append(f"{slug}: Validator exception: {str(e)}")
                continue

            if not is_valid and error_msg:
                message = descriptor["validation_message"] or error_msg
                errors.append(f"{slug}: {message}")

    @staticmethod
    def _format_validation_error(err: jsonschema.exceptions.ValidationError) -> str:
        loc = ".".join([str(p) for p in err.path])
        if loc:
            return f"{loc}: {err.message}"
        return err.message


# ----------------------------- Default Schema Builders ------------------------

def _with_length_and_pattern(node: Dict[str, Any], descriptor: Dict[str, Any]) -> Dict[str, Any]:
    attributes = descriptor["attributes"]
    if "maxlength" in attributes:
        node["maxLength"] = int(attributes["maxlength"])
    pattern = attributes.get("pattern")
    if pattern:
        # HTML patterns are implicitly anchored
        anchored = f"^(?:{pattern})$"
        try:
            re.compile(anchored)
            node["pattern"] = anchored
        except re.error as e:
            logger.warning(f"Ignoring invalid pattern for field '{descriptor['slug']}': {e}")
    return node


def _describe(node: Dict[str, Any], descriptor: Dict[str, Any]) -> Dict[str, Any]:
    if descriptor["description"]:
        node["description"] = descriptor["description"]
    return node


@_register_field_schema_builder("text", "tel", "textarea")
def _text_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    """Default text schema builder - nullable string with optional maxLength/pattern."""
    return _describe(_with_length_and_pattern({"type": ["string", "null"]}, descriptor), descriptor)


@_register_field_schema_builder("email")
def _email_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    node = _with_length_and_pattern({"type": ["string", "null"], "format": "email"}, descriptor)
    return _describe(node, descriptor)


@_register_field_schema_builder("url")
def _url_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    node = _with_length_and_pattern({"type": ["string", "null"], "format": "uri"}, descriptor)
    return _describe(node, descriptor)


@_register_field_schema_builder("rich")
def _rich_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    """Rich values are stored as HTML strings."""
    return _describe({"type": ["string", "null"], "contentMediaType": "text/html"}, descriptor)


@_register_field_schema_builder("number")
def _number_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    """Number schema builder - form values may arrive as numeric strings (checked by the number validator)."""
    node: Dict[str, Any] = {"type": ["number", "string", "null"]}
    for attribute, keyword in (("min", "minimum"), ("max", "maximum")):
        bound = descriptor["attributes"].get(attribute)
        if bound is not None and is_numeric_string(bound):
            node[keyword] = float(bound)
    return _describe(node, descriptor)


@_register_field_schema_builder("checkbox")
def _checkbox_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    return _describe({"type": ["boolean", "integer", "string", "null"]}, descriptor)


@_register_field_schema_builder("select")
def _select_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    """Select schema builder - enum of option values when options are declared."""
    node: Dict[str, Any] = {"type": ["string", "null"]}
    if descriptor["options"]:
        # "" is what an untouched select submits
        node["enum"] = list(descriptor["options"].keys()) + ["", None]
    return _describe(node, descriptor)


@_register_field_schema_builder("date")
def _date_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    return _describe({"type": ["string", "null"], "format": "date"}, descriptor)


@_register_field_schema_builder("datetime-local")
def _datetime_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    return _describe({"type": ["string", "null"], "format": "date-time"}, descriptor)


@_register_field_schema_builder("time")
def _time_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    return _describe({"type": ["string", "null"], "format": "time"}, descriptor)


@_register_field_schema_builder("array")
def _array_schema_builder(engine: FieldEngine, descriptor: Dict[str, Any]) -> Dict[str, Any]:
    """Repeater rows are objects keyed by item slug."""
    return _describe({"type": ["array", "null"], "items": {"type": "object"}}, descriptor)


# ----------------------------- Default Validators -----------------------------

@_register_validator("number")
def _number_validator(engine: FieldEngine, value: Any, descriptor: Dict[str, Any]) -> Tuple[bool, str]:
    """Numeric strings are accepted; bounds are checked for them too."""
    if isinstance(value, str):
        if value.strip() == '' and not descriptor["required"]:
            return True, ""
        if not is_numeric_string(value):
            return False, f"Invalid number: {value}"
        value = float(value)
    attributes = descriptor["attributes"]
    if "min" in attributes and is_numeric_string(attributes["min"]) and value < float(attributes["min"]):
        return False, f"Value {value} is below minimum {attributes['min']}"
    if "max" in attributes and is_numeric_string(attributes["max"]) and value > float(attributes["max"]):
        return False, f"Value {value} is above maximum {attributes['max']}"
    return True, ""


@_register_validator("date")
def _date_validator(engine: FieldEngine, value: Any, descriptor: Dict[str, Any]) -> Tuple[bool, str]:
    """Validate ISO date format."""
    if value == '' and not descriptor["required"]:
        return True, ""
    try:
        date.fromisoformat(value)
        return True, ""
    except ValueError:
        return False, f"Invalid ISO date format: {value}"


@_register_validator("datetime-local")
def _datetime_validator(engine: FieldEngine, value: Any, descriptor: Dict[str, Any]) -> Tuple[bool, str]:
    """Validate ISO datetime format."""
    if value == '' and not descriptor["required"]:
        return True, ""
    # Replace 'Z' with '+00:00' to use datetime.fromisoformat
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    try:
        datetime.fromisoformat(value)
        return True, ""
    except ValueError:
        return False, f"Invalid ISO datetime format: {value}"


@_register_validator("time")
def _time_validator(engine: FieldEngine, value: Any, descriptor: Dict[str, Any]) -> Tuple[bool, str]:
    if value == '' and not descriptor["required"]:
        return True, ""
    try:
        time.fromisoformat(value)
        return True, ""
    except ValueError:
        return False, f"Invalid ISO time format: {value}"


@_register_validator("checkbox")
def _checkbox_validator(engine: FieldEngine, value: Any, descriptor: Dict[str, Any]) -> Tuple[bool, str]:
    """A required checkbox must be checked."""
    if descriptor["required"] and not is_truthy(value):
        return False, "This box must be checked"
    return True, ""
