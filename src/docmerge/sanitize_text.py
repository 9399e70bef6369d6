"""Text sanitization utilities for schema tokens, option labels and CSS classes."""

import re
from typing import Any


# a tag opens with a letter, "/", "!" or "?"; "1 < 2 > 0" is text
_TAG_RE = re.compile(r"<[A-Za-z/!?][^>]*>")
_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_KEY_RE = re.compile(r"[^a-z0-9_\-]")
_ATTRIBUTE_NAME_RE = re.compile(r"[^a-z0-9_\-:]")


def _scalar_to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


def strip_all_tags(text: str) -> str:
    """Remove <script>/<style> elements with their content, then every remaining tag.

    Stray angle brackets that do not open a tag are kept.
    """
    text = _SCRIPT_STYLE_RE.sub("", text)
    return _TAG_RE.sub("", text)


def sanitize_text_field(text: Any) -> str:
    """
    Reduce a value to a single line of plain text.

    This function sanitizes text by:
    1. Converting scalars to strings (anything else becomes "")
    2. Removing HTML tags
    3. Replacing control characters (newlines, tabs, etc.) with spaces
    4. Normalizing whitespace

    Examples:
        >>> sanitize_text_field('<b>Bold</b>  text')
        'Bold text'
        >>> sanitize_text_field(42)
        '42'
        >>> sanitize_text_field(None)
        ''
    """
    clean_text = strip_all_tags(_scalar_to_str(text))

    # Remove control characters (newlines, tabs, carriage returns, etc.)
    clean_text = re.sub(r'[\x00-\x1f\x7f]', ' ', clean_text)

    return " ".join(clean_text.split())


def sanitize_key(key: Any) -> str:
    """Lowercase a token and keep only [a-z0-9_-].

    >>> sanitize_key('Date-Time')
    'date-time'
    >>> sanitize_key('Text Area!')
    'textarea'
    """
    return _KEY_RE.sub("", _scalar_to_str(key).lower())


def sanitize_html_class(css_class: Any) -> str:
    """Keep only [a-z0-9_-]; uppercase letters are dropped, not lowered."""
    return _KEY_RE.sub("", _scalar_to_str(css_class))


def sanitize_attribute_name(name: Any) -> str:
    """Lowercase an HTML attribute name and keep only [a-z0-9_-:]."""
    return _ATTRIBUTE_NAME_RE.sub("", _scalar_to_str(name).lower())
