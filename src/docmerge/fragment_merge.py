"""
Merge loop: replace stored rich-text values inside flattened template text.

The XML emitter is supplied by the caller as `emit(raw_html) -> str`. Slots that cannot
host block markup (allow_blocks=False) get the plain-text rendition of block values
instead, passed through `plain(text) -> str` (XML-escaped by default).

Line breaks are normalized for matching only; template text outside the matches is
copied from the input unchanged.
"""

from __future__ import annotations

from typing import Any, Callable, List, Mapping, NamedTuple, Optional
from xml.sax.saxutils import escape as xml_escape

from .docmerge_logging import create_logger
from .html_fragments import (
    contains_block_elements,
    find_next_html_match,
    normalize_lookup_line_endings,
    normalize_text_newlines_with_offsets,
    prepare_rich_lookup,
    strip_to_text,
)


logger = create_logger(__name__)


class MergeResult(NamedTuple):
    text: str
    replacements: int


def merge_rich_fragments(
    text: Any,
    lookup: Mapping[str, str],
    emit: Callable[[str], str],
    *,
    allow_blocks: bool = True,
    plain: Optional[Callable[[str], str]] = None,
) -> MergeResult:
    """Replace every occurrence of a lookup key in `text`, scanning left to right.

    Args:
        text: Flattened template text.
        lookup: Identity lookup (see prepare_rich_lookup); it is expanded with the
            newline / entity / whitespace variants before scanning.
        emit: Produces the replacement markup for a raw HTML value.
        allow_blocks: False for inline slots; block values are then demoted to plain text.
        plain: Renders demoted plain text; defaults to XML escaping.

    Returns:
        MergeResult with the merged text and the replacement count.
    """
    original = '' if text is None else str(text)
    expanded = normalize_lookup_line_endings(lookup)
    if not expanded:
        return MergeResult(original, 0)

    normalized_text, offsets = normalize_text_newlines_with_offsets(original)
    plain = plain or xml_escape
    parts: List[str] = []
    offset = 0
    replacements = 0

    while True:
        match = find_next_html_match(normalized_text, expanded, offset)
        if match is None:
            break

        # gaps are sliced from the original text, not the normalized one
        parts.append(original[offsets[offset]:offsets[match.position]])
        if not allow_blocks and contains_block_elements(match.raw):
            logger.debug(f"Demoting block value at offset {match.position} to plain text")
            parts.append(plain(strip_to_text(match.raw)))
        else:
            parts.append(emit(match.raw))

        offset = match.position + len(match.key)
        replacements += 1

    parts.append(original[offsets[offset]:])
    logger.debug(f"Merged {replacements} rich fragment(s) using {len(expanded)} lookup keys")
    return MergeResult(''.join(parts), replacements)


def merge_rich_values(
    text: Any,
    values: Any,
    emit: Callable[[str], str],
    *,
    allow_blocks: bool = True,
    plain: Optional[Callable[[str], str]] = None,
) -> MergeResult:
    """Build the lookup from raw stored values and run merge_rich_fragments."""
    return merge_rich_fragments(
        text,
        prepare_rich_lookup(values),
        emit,
        allow_blocks=allow_blocks,
        plain=plain,
    )
