"""
HTML attribute derivation for scalar field controls.

The attribute set is built in two layers. Top-level schema keys (placeholder, pattern,
length, minvalue, maxvalue) are written first; the nested "parameters" bag is layered on
top and may only fill attributes that are still absent. Synonym keys in "parameters" are
tried in a fixed order, the first usable one wins.
"""

from __future__ import annotations

from html import escape
from typing import Any, Dict, List, Optional, Sequence
import logging
import math
import re

from .field_types import InputType, is_numeric_string, is_truthy
from .sanitize_text import sanitize_attribute_name, sanitize_key, sanitize_text_field


logger = logging.getLogger(__name__)


NO_PLACEHOLDER_INPUT_TYPES = (InputType.CHECKBOX.value, InputType.SELECT.value)

NUMERIC_INPUT_TYPES = ('number', 'range', InputType.DATE.value, InputType.DATETIME_LOCAL.value, InputType.TIME.value)

STEP_INPUT_TYPES = ('number', 'range')

REQUIRED_KEYS = ('required', 'is_required')
READONLY_KEYS = ('readonly', 'read_only', 'disabled')

DESCRIPTION_KEYS = ('description', 'help', 'hint')
TITLE_KEYS = ('title',)
VALIDATION_MESSAGE_KEYS = ('validation_message', 'validation-message', 'invalid', 'error')
PATTERN_MESSAGE_KEYS = ('patternmsg', 'pattern_message', 'pattern-message')

_LEADING_INT_RE = re.compile(r'^\s*([+-]?\d+)')


def parse_int(value: Any) -> int:
    """Integer coercion for loosely typed numeric settings ("12px" -> 12, "abc" -> 0)."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value)
        return int(match.group(1)) if match else 0
    return 0


def _is_empty(value: Any) -> bool:
    return value is None or value is False or value == '' or value == '0' or value == 0 or value == [] or value == {}


def _attribute_value(value: Any) -> Optional[str]:
    """String form of a scalar attribute value; None for values that cannot be rendered."""
    if isinstance(value, bool):
        return '1' if value else ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _parameters(raw_field: Dict[str, Any]) -> Dict[str, Any]:
    params = raw_field.get('parameters')
    return params if isinstance(params, dict) else {}


def get_parameter_value(raw_field: Any, keys: Sequence[str]) -> str:
    """First non-empty parameters value among `keys`, sanitized as plain text."""
    if not isinstance(raw_field, dict):
        return ''

    params = _parameters(raw_field)
    for key in keys:
        value = params.get(key)
        if value is not None and value != '':
            return sanitize_text_field(value)

    return ''


def _top_level_or_parameter(raw_field: Any, top_key: str, keys: Sequence[str]) -> str:
    if not isinstance(raw_field, dict):
        return ''

    value = raw_field.get(top_key)
    if isinstance(value, str) and value != '':
        return sanitize_text_field(value)

    return get_parameter_value(raw_field, keys)


def get_field_description(raw_field: Any) -> str:
    return _top_level_or_parameter(raw_field, 'description', DESCRIPTION_KEYS)


def get_field_title(raw_field: Any) -> str:
    return _top_level_or_parameter(raw_field, 'title', TITLE_KEYS)


def get_field_validation_message(raw_field: Any) -> str:
    return _top_level_or_parameter(raw_field, 'patternmsg', VALIDATION_MESSAGE_KEYS)


def get_field_pattern_message(raw_field: Any) -> str:
    return _top_level_or_parameter(raw_field, 'patternmsg', PATTERN_MESSAGE_KEYS)


def _set_if_absent(attributes: Dict[str, str], name: str, value: Any) -> None:
    if name in attributes:
        return
    rendered = _attribute_value(value)
    if rendered is not None:
        attributes[name] = rendered


def _add_parameter_attributes(raw_field: Dict[str, Any], input_type: str, attributes: Dict[str, str]) -> None:
    params = _parameters(raw_field)
    if not params:
        return

    allows_placeholder = input_type not in NO_PLACEHOLDER_INPUT_TYPES

    if any(key in params and is_truthy(params[key]) for key in REQUIRED_KEYS):
        attributes['required'] = 'required'

    if any(key in params and is_truthy(params[key]) for key in READONLY_KEYS):
        attributes['readonly'] = 'readonly'

    if allows_placeholder and not attributes.get('placeholder') and params.get('placeholder') is not None:
        attributes['placeholder'] = sanitize_text_field(params['placeholder'])

    if input_type in STEP_INPUT_TYPES and params.get('step') is not None:
        # kept as written ("0.5"); non-numeric or non-positive steps are dropped
        step = _attribute_value(params['step'])
        if step is not None and is_numeric_string(step) and float(step) > 0:
            _set_if_absent(attributes, 'step', step)

    if input_type in NUMERIC_INPUT_TYPES:
        # top-level minvalue/maxvalue always win
        if params.get('min') is not None:
            _set_if_absent(attributes, 'min', params['min'])
        if params.get('max') is not None:
            _set_if_absent(attributes, 'max', params['max'])

    if input_type == 'textarea' and params.get('rows') is not None:
        rows = parse_int(params['rows'])
        if rows > 0:
            attributes['rows'] = str(rows)


def build_scalar_input_attributes(raw_field: Any, input_type: Any) -> Dict[str, str]:
    """Build the HTML attribute set of a scalar control from its raw schema record.

    Args:
        raw_field: Raw schema record (anything that is not a dict yields no attributes).
        input_type: Resolved input type, e.g. "number" or InputType.NUMBER.

    Returns:
        Ordered attribute map; non-positive length/rows/step values are dropped.
    """
    attributes: Dict[str, str] = {}
    input_type = sanitize_key(input_type)
    allows_placeholder = input_type not in NO_PLACEHOLDER_INPUT_TYPES

    if not isinstance(raw_field, dict):
        return attributes

    if allows_placeholder and not _is_empty(raw_field.get('placeholder')):
        attributes['placeholder'] = sanitize_text_field(raw_field['placeholder'])

    if allows_placeholder and not _is_empty(raw_field.get('pattern')):
        pattern = _attribute_value(raw_field['pattern'])
        if pattern is not None:
            attributes['pattern'] = pattern

    if allows_placeholder and raw_field.get('length') is not None:
        length = parse_int(raw_field['length'])
        if length > 0:
            attributes['maxlength'] = str(length)

    if input_type in NUMERIC_INPUT_TYPES:
        if raw_field.get('minvalue') is not None:
            _set_if_absent(attributes, 'min', raw_field['minvalue'])
        if raw_field.get('maxvalue') is not None:
            _set_if_absent(attributes, 'max', raw_field['maxvalue'])

    _add_parameter_attributes(raw_field, input_type, attributes)

    if 'title' not in attributes:
        title_attribute = get_field_pattern_message(raw_field) or get_field_title(raw_field)
        if title_attribute:
            attributes['title'] = title_attribute

    logger.debug(f"Built attributes for input_type='{input_type}': {list(attributes.keys())}")
    return attributes


def format_field_attributes(attributes: Any) -> str:
    """Convert an attribute map into an HTML attribute string.

    True renders a bare attribute name; False and None are skipped.

    >>> format_field_attributes({'maxlength': '10', 'required': True, 'readonly': False})
    'maxlength="10" required'
    """
    if not attributes or not isinstance(attributes, dict):
        return ''

    parts: List[str] = []
    for name, value in attributes.items():
        name = sanitize_attribute_name(name)
        if name == '':
            continue

        if isinstance(value, bool):
            if value:
                parts.append(escape(name))
            continue

        if value is None:
            continue

        parts.append(f'{escape(name)}="{escape(str(value))}"')

    return ' '.join(parts)
