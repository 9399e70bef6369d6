"""
Rendering helpers for document fields: CSS classes, select options and select placeholders.

Uses lookup tables instead of branching so the class and option rules stay data driven.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from . import config
from .sanitize_text import sanitize_html_class, sanitize_key, sanitize_text_field


# Input type -> extra CSS class; anything else gets DEFAULT_INPUT_CLASS
INPUT_CLASS_MAP: Dict[str, str] = {
    'textarea': 'large-text',
    'checkbox': 'field-checkbox',
    'select': 'regular-text',
}

DEFAULT_INPUT_CLASS = 'regular-text'

OPTION_KEYS = ('options', 'choices', 'values')

PLACEHOLDER_KEYS = ('placeholder', 'prompt', 'empty', 'empty_label')


def build_input_class(input_type: Any, prefix: Optional[str] = None) -> str:
    """Build the class attribute of a rendered control.

    >>> build_input_class('textarea')
    'field-input field-input-textarea large-text'
    """
    prefix = prefix if prefix is not None else config.FIELD_CLASS_PREFIX
    input_type = sanitize_key(input_type)
    classes = [
        prefix,
        f'{prefix}-{input_type}',
        INPUT_CLASS_MAP.get(input_type, DEFAULT_INPUT_CLASS),
    ]

    unique: List[str] = []
    for css_class in classes:
        css_class = sanitize_html_class(css_class)
        if css_class and css_class not in unique:
            unique.append(css_class)

    return ' '.join(unique)


def _parse_mapping_options(candidate: Mapping[Any, Any]) -> Dict[str, str]:
    options: Dict[str, str] = {}
    for value, label in candidate.items():
        # integer keys come from plain label lists; the label doubles as the value
        option_value = label if isinstance(value, int) and not isinstance(value, bool) else value
        options[sanitize_text_field(option_value)] = sanitize_text_field(label)
    return options


def _parse_string_options(source: str) -> Dict[str, str]:
    options: Dict[str, str] = {}
    delimiter = '|' if '|' in source else ','

    for piece in (p.strip() for p in source.split(delimiter)):
        if piece == '':
            continue

        if ':' in piece:
            value, label = (part.strip() for part in piece.split(':', 1))
        else:
            value = label = piece

        options[sanitize_text_field(value)] = sanitize_text_field(label)

    return options


def _find_options_candidate(params: Mapping[str, Any]) -> Any:
    for key in OPTION_KEYS:
        candidate = params.get(key)
        if candidate is not None and candidate != '':
            return candidate
    return None


def parse_select_options(raw_field: Any) -> Dict[str, str]:
    """Parse {value: label} select options from the schema parameters.

    Accepts a mapping, a list of labels, or a delimited string such as "a:Alpha|b:Beta"
    (pipe wins over comma; each piece may carry a "value:label" pair).
    """
    if not isinstance(raw_field, dict):
        return {}

    params = raw_field.get('parameters')
    if not isinstance(params, dict):
        return {}

    candidate = _find_options_candidate(params)

    if isinstance(candidate, Mapping):
        return _parse_mapping_options(candidate)
    if isinstance(candidate, (list, tuple)):
        return _parse_mapping_options(dict(enumerate(candidate)))
    if isinstance(candidate, str):
        return _parse_string_options(candidate)

    return {}


def get_select_placeholder(raw_field: Any) -> str:
    """Placeholder text for a select control, or "" if the schema defines none."""
    if not isinstance(raw_field, dict):
        return ''

    placeholder = raw_field.get('placeholder')
    if placeholder is not None and placeholder != '':
        return sanitize_text_field(placeholder)

    params = raw_field.get('parameters')
    if not isinstance(params, dict):
        return ''

    for key in PLACEHOLDER_KEYS:
        value = params.get(key)
        if value is not None and value != '':
            return sanitize_text_field(value)

    return ''
