"""
Field type resolution: control types, HTML input types, truthiness and scalar value normalization.

Document-type schemas mix a legacy control vocabulary (single/textarea/rich/array) with
free-form type tokens coming from imported templates ("html", "varchar", "dropdown", ...).
Everything here is table driven: each token set is a tuple or dict checked in a fixed
order, so an ambiguous token always resolves the same way.

Every function is total - unknown tokens fall back to safe defaults instead of raising.
"""

from __future__ import annotations

from datetime import timezone
from enum import Enum as PyEnum
from typing import Any, Dict, Optional
import logging
import math
import re

from dateutil import parser as dateparser

from .sanitize_text import sanitize_key


logger = logging.getLogger(__name__)


class ControlType(str, PyEnum):
    SINGLE = 'single'       # single-line input, refined by InputType
    TEXTAREA = 'textarea'   # multi-line plain text
    RICH = 'rich'           # WYSIWYG / HTML value
    ARRAY = 'array'         # repeater; terminal, no scalar mapping applies

    def __str__(self) -> str:
        return self.value


class InputType(str, PyEnum):
    TEXT = 'text'
    NUMBER = 'number'
    EMAIL = 'email'
    URL = 'url'
    TEL = 'tel'
    DATE = 'date'
    DATETIME_LOCAL = 'datetime-local'
    TIME = 'time'
    CHECKBOX = 'checkbox'
    SELECT = 'select'

    def __str__(self) -> str:
        return self.value


LEGACY_CONTROL_TYPES = (ControlType.SINGLE.value, ControlType.TEXTAREA.value, ControlType.RICH.value)

RICH_TYPES = ('html', 'rich', 'tinymce', 'editor')

TEXTAREA_TYPES = ('textarea', 'text-area', 'text_area')

SINGLE_TYPES = (
    'text',
    'string',
    'varchar',
    'email',
    'url',
    'link',
    'number',
    'numeric',
    'int',
    'integer',
    'float',
    'decimal',
    'date',
    'datetime',
    'datetime-local',
    'time',
    'tel',
    'phone',
    'boolean',
    'bool',
    'checkbox',
    'select',
    'dropdown',
    'choice',
)

# Schema field type -> HTML input type. Checked before DATA_TYPE_MAP.
INPUT_TYPE_MAP: Dict[str, InputType] = {
    'text': InputType.TEXT,
    'string': InputType.TEXT,
    'varchar': InputType.TEXT,
    'number': InputType.NUMBER,
    'numeric': InputType.NUMBER,
    'int': InputType.NUMBER,
    'integer': InputType.NUMBER,
    'float': InputType.NUMBER,
    'decimal': InputType.NUMBER,
    'email': InputType.EMAIL,
    'url': InputType.URL,
    'link': InputType.URL,
    'tel': InputType.TEL,
    'phone': InputType.TEL,
    'date': InputType.DATE,
    'datetime': InputType.DATETIME_LOCAL,
    'datetime-local': InputType.DATETIME_LOCAL,
    'datetime_local': InputType.DATETIME_LOCAL,
    'time': InputType.TIME,
    'boolean': InputType.CHECKBOX,
    'bool': InputType.CHECKBOX,
    'checkbox': InputType.CHECKBOX,
    'select': InputType.SELECT,
    'dropdown': InputType.SELECT,
    'choice': InputType.SELECT,
}

# Normalized data type -> HTML input type.
DATA_TYPE_MAP: Dict[str, InputType] = {
    'number': InputType.NUMBER,
    'date': InputType.DATE,
    'boolean': InputType.CHECKBOX,
}

TRUTHY_STRINGS = ('true', 'yes', '1', 'on')

# Optional sign, digits with optional fraction and exponent, surrounding whitespace allowed
_NUMERIC_STRING_RE = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$')

# bare digit runs other than YYYYMMDD ("10", "2024") are not dates
_BARE_NUMBER_RE = re.compile(r'^\d{1,7}$|^\d{9,}$')


def is_numeric_string(value: str) -> bool:
    return bool(_NUMERIC_STRING_RE.match(value))


def is_truthy(value: Any) -> bool:
    """Interpret a loosely typed flag.

    - bool: passed through
    - int / float / numeric string: truthy iff > 0 (so -1 is False and 0.5 is True)
    - other strings: truthy iff one of "true", "yes", "1", "on" (case-insensitive)
    - anything else: False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return not math.isnan(value) and value > 0
    if isinstance(value, str):
        if is_numeric_string(value):
            return float(value) > 0
        return value.lower() in TRUTHY_STRINGS
    return False


def _extract_raw_type(raw_field: Any) -> str:
    if not isinstance(raw_field, dict):
        return ''

    if 'type' in raw_field and raw_field['type'] is not None:
        return sanitize_key(raw_field['type'])

    params = raw_field.get('parameters')
    if isinstance(params, dict) and params.get('type') is not None:
        return sanitize_key(params['type'])

    return ''


def resolve_field_control_type(legacy_type: Any, raw_field: Optional[Dict[str, Any]] = None) -> ControlType:
    """Resolve the control type for a field.

    Args:
        legacy_type: Control type stored with the document type (single, textarea, rich, array).
        raw_field: Raw schema record; its "type" (or parameters.type) refines the legacy type.

    Returns:
        One of ControlType.SINGLE, TEXTAREA, RICH or ARRAY.
    """
    legacy_type = sanitize_key(legacy_type)
    if legacy_type == '':
        legacy_type = ControlType.TEXTAREA.value
    if legacy_type == ControlType.ARRAY.value:
        return ControlType.ARRAY

    if legacy_type not in LEGACY_CONTROL_TYPES:
        legacy_type = ControlType.TEXTAREA.value

    raw_type = _extract_raw_type(raw_field)

    if raw_type == '':
        return ControlType.RICH if legacy_type == ControlType.RICH.value else ControlType.TEXTAREA

    if raw_type in RICH_TYPES:
        return ControlType.RICH

    if raw_type in TEXTAREA_TYPES:
        return ControlType.TEXTAREA

    if raw_type in SINGLE_TYPES:
        return ControlType.SINGLE

    return ControlType(legacy_type)


def map_single_input_type(field_type: Any, data_type: Any = '') -> InputType:
    """Map schema type hints to a concrete HTML input type; falls back to text."""
    field_type = str(field_type).lower() if field_type is not None else ''
    data_type = str(data_type).lower() if data_type is not None else ''

    if field_type in INPUT_TYPE_MAP:
        return INPUT_TYPE_MAP[field_type]

    if data_type in DATA_TYPE_MAP:
        return DATA_TYPE_MAP[data_type]

    return InputType.TEXT


def _format_date(value: str, fmt: str) -> str:
    if _BARE_NUMBER_RE.match(value.strip()):
        logger.debug(f"Not treating bare number '{value}' as a date")
        return value
    try:
        parsed = dateparser.parse(value)
    except (ValueError, OverflowError) as e:
        logger.debug(f"Could not parse date value '{value}': {e}")
        return value
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime(fmt)


def normalize_scalar_value(value: Any, input_type: Any) -> str:
    """Normalize a stored value for the HTML control it will be rendered in.

    Checkbox values become "1"/"0", date and datetime-local values are reformatted
    to the shape the browser control expects. Unparseable dates and bare numbers
    such as "10" are returned as-is.
    """
    if isinstance(value, bool):
        value = '1' if value else ''
    elif isinstance(value, (str, int, float)):
        value = str(value)
    else:
        value = ''
    input_type = sanitize_key(input_type)

    if input_type == InputType.CHECKBOX.value:
        return '1' if is_truthy(value) else '0'

    if input_type == InputType.DATETIME_LOCAL.value:
        return _format_date(value, '%Y-%m-%dT%H:%M')

    if input_type == InputType.DATE.value:
        return _format_date(value, '%Y-%m-%d')

    return value
