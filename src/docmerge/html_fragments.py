"""
Rich-text fragment lookup and matching for template merging.

When a template is flattened to text, a stored HTML value may show up in several shapes:
with CRLF or literal "\\n" escapes instead of LF, entity-encoded by the XML writer, or with
the whitespace between tags collapsed. The lookup table maps every such shape (key) back
to the raw value that has to be merged in its place (value).

Matching rules (find_next_html_match):
- Text and keys are compared after newline normalization.
- The occurrence with the smallest start position wins.
- On a tie in position the longest key wins, so a key that is a prefix of a longer key
  starting at the same offset never shadows it.
- A miss is returned as None; it is not an error.

Usage:
```python
lookup = prepare_rich_lookup(["<p>Hello</p>", "plain text"])
lookup = normalize_lookup_line_endings(lookup)
match = find_next_html_match(flattened_text, lookup, 0)
if match:
    position, key, raw = match
```
"""

from __future__ import annotations

from html import unescape
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple
from xml.sax.saxutils import escape as xml_escape
import logging
import re

from .sanitize_text import strip_all_tags


logger = logging.getLogger(__name__)


BLOCK_TAGS = ('table', 'ul', 'ol', 'p', 'div', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'blockquote', 'pre')

XML_QUOTE_ENTITIES = {'"': '&quot;', "'": '&apos;'}

# escaped "\\r\\n", "\\n", "\\r" or a real CRLF / CR; each token is one line break
_NEWLINE_TOKEN_RE = re.compile(r"\\r\\n|\\n|\\r|\r\n|\r")
_LINE_BREAKS_RE = re.compile(r'[\r\n]+')
_MULTI_SPACE_RE = re.compile(r'\s{2,}')
_SPACE_BETWEEN_TAGS_RE = re.compile(r'>\s+<')
_BLOCK_OPENING_RE = re.compile(r'<(?:p|div|br|li|h[1-6])(?=[\s/>])[^>]*>', re.IGNORECASE)
_CRLF_RE = re.compile(r'\r\n|\r')
_EXCESS_NEWLINES_RE = re.compile(r'\n{3,}')


class FragmentMatch(NamedTuple):
    position: int   # offset in the newline-normalized text
    key: str        # matched lookup key, newline-normalized; len(key) is the match length
    raw: str        # raw value to merge in place of the match


def normalize_text_newlines(value: Any) -> str:
    """Turn literal "\\r\\n", "\\n", "\\r" escape sequences and CR/CRLF into LF."""
    if value is None:
        return ''
    return _NEWLINE_TOKEN_RE.sub('\n', str(value))


def normalize_text_newlines_with_offsets(value: Any) -> Tuple[str, List[int]]:
    """normalize_text_newlines plus an offset map back into the original text.

    offsets[i] is the offset in the original text where normalized character i
    starts; offsets[len(normalized)] is len(original).

    >>> normalize_text_newlines_with_offsets('a\\r\\nb')
    ('a\\nb', [0, 1, 3, 4])
    """
    text = '' if value is None else str(value)
    parts: List[str] = []
    offsets: List[int] = []
    last = 0
    for token in _NEWLINE_TOKEN_RE.finditer(text):
        parts.append(text[last:token.start()])
        offsets.extend(range(last, token.start()))
        parts.append('\n')
        offsets.append(token.start())
        last = token.end()
    parts.append(text[last:])
    offsets.extend(range(last, len(text)))
    offsets.append(len(text))
    return ''.join(parts), offsets


def normalize_for_html_matching(text: str) -> str:
    """Drop line breaks, collapse whitespace runs and remove whitespace between tags.

    >>> normalize_for_html_matching('<p>\\n  Text  \\n</p>')
    '<p> Text </p>'
    """
    text = _LINE_BREAKS_RE.sub('', text)
    text = _MULTI_SPACE_RE.sub(' ', text)
    text = _SPACE_BETWEEN_TAGS_RE.sub('><', text)
    return text.strip()


def encode_html_entities(text: str) -> str:
    """Escape &, <, >, double and single quotes the way an XML writer does."""
    return xml_escape(text, XML_QUOTE_ENTITIES)


def prepare_rich_lookup(values: Any) -> Dict[str, str]:
    """Collect the values that look like HTML into an identity lookup table.

    Only strings containing both "<" and ">" are kept. This is a cheap gate, not a
    parser: exactness is decided later by the literal substring match.
    """
    lookup: Dict[str, str] = {}
    if isinstance(values, Mapping):
        values = values.values()
    elif isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        return lookup

    for value in values:
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value == '':
            continue
        if '<' not in value or '>' not in value:
            continue
        lookup.setdefault(value, value)

    return lookup


def normalize_lookup_line_endings(lookup: Mapping[str, str]) -> Dict[str, str]:
    """Expand every lookup entry into the textual variants a template may contain.

    For each (html, raw) pair, in this order:
    1. newline-normalized html -> newline-normalized raw
    2. entity-encoded variant of (1), if different
    3. whitespace-collapsed variant of (1), if different
    A key that is already present is never overwritten.
    """
    normalized: Dict[str, str] = {}
    for html, raw in lookup.items():
        normalized_html = normalize_text_newlines(html)
        normalized_value = normalize_text_newlines(raw)

        normalized.setdefault(normalized_html, normalized_value)

        encoded = normalize_text_newlines(encode_html_entities(normalized_html))
        if encoded != normalized_html:
            normalized.setdefault(encoded, normalized_value)

        collapsed = normalize_for_html_matching(normalized_html)
        if collapsed != normalized_html:
            normalized.setdefault(collapsed, normalized_value)

    logger.debug(f"Expanded {len(lookup)} rich values into {len(normalized)} lookup keys")
    return normalized


def find_next_html_match(text: Any, lookup: Mapping[str, str], position: int = 0) -> Optional[FragmentMatch]:
    """Find the next occurrence of any lookup key in `text`, starting at `position`.

    Args:
        text: Flattened template text (normalized for newlines before scanning).
        lookup: Lookup table of key -> raw replacement value.
        position: Offset in the normalized text where the scan starts.

    Returns:
        FragmentMatch(position, key, raw) for the earliest occurrence, longest key first
        on ties; None when no key occurs.
    """
    normalized_text = normalize_text_newlines(text)
    position = max(0, int(position))

    found: Optional[FragmentMatch] = None
    for html, raw in lookup.items():
        normalized_html = normalize_text_newlines(html)
        if normalized_html == '':
            continue

        pos = normalized_text.find(normalized_html, position)
        if pos == -1:
            continue

        if (
            found is None
            or pos < found.position
            or (pos == found.position and len(normalized_html) > len(found.key))
        ):
            found = FragmentMatch(pos, normalized_html, raw)

    return found


def contains_block_elements(html: Any) -> bool:
    """True if the HTML opens any block-level tag (case-insensitive scan, not a parser)."""
    if not isinstance(html, str) or html == '':
        return False
    lowered = html.lower()
    return any(f'<{tag}' in lowered for tag in BLOCK_TAGS)


def _strip_to_text_pass(text: str) -> str:
    text = unescape(text)
    text = _BLOCK_OPENING_RE.sub('\n', text)
    text = strip_all_tags(text)
    text = _CRLF_RE.sub('\n', text)
    text = _EXCESS_NEWLINES_RE.sub('\n\n', text)
    return text.strip()


def strip_to_text(html: Any) -> str:
    """Degrade rich HTML to plain text.

    Entities are decoded, p/div/br/li/h1-h6 openings become line breaks, all other tags
    are removed and runs of 3+ line breaks collapse to 2. Passes repeat until the text is
    stable, so strip_to_text(strip_to_text(x)) == strip_to_text(x).

    >>> strip_to_text('<p>Hello <strong>World</strong></p>')
    'Hello World'
    """
    if html is None:
        return ''
    text = str(html)
    # every pass either shortens the text or only turns CRs into LFs, so this terminates
    while True:
        stripped = _strip_to_text_pass(text)
        if stripped == text:
            return stripped
        text = stripped
