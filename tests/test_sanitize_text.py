"""Tests for sanitize_text module."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from docmerge.sanitize_text import (
    sanitize_attribute_name,
    sanitize_html_class,
    sanitize_key,
    sanitize_text_field,
    strip_all_tags,
)


class TestSanitizeTextField:
    """Test the sanitize_text_field function."""

    def test_html_tags(self):
        """Test that HTML tags are removed."""
        assert sanitize_text_field('<b>Bold text</b>') == 'Bold text'
        assert sanitize_text_field('<i>Italic</i> text') == 'Italic text'
        assert sanitize_text_field('<span attr="value">Text</span>') == 'Text'

    def test_script_and_style_content(self):
        """Test that script/style elements are removed with their content."""
        assert sanitize_text_field('<script>alert("x")</script>Safe') == 'Safe'
        assert sanitize_text_field('<STYLE type="text/css">p {}</STYLE>Visible') == 'Visible'

    def test_control_characters(self):
        """Test that control characters (newlines, tabs) become single spaces."""
        assert sanitize_text_field('Line1\nLine2\tTabbed') == 'Line1 Line2 Tabbed'
        assert sanitize_text_field('With\rCarriage') == 'With Carriage'
        assert sanitize_text_field('Null\x00byte') == 'Null byte'

    def test_whitespace(self):
        assert sanitize_text_field('   padded    text   ') == 'padded text'

    def test_quotes_are_kept(self):
        assert sanitize_text_field('If "yes" then it\'s fine') == 'If "yes" then it\'s fine'

    def test_comparison_brackets_are_kept(self):
        assert sanitize_text_field('a < b > c') == 'a < b > c'
        assert sanitize_text_field('<b>1 < 2</b> and 3 > 2') == '1 < 2 and 3 > 2'

    def test_scalars(self):
        """Test that scalars are converted and everything else becomes empty."""
        assert sanitize_text_field(123) == '123'
        assert sanitize_text_field(12.5) == '12.5'
        assert sanitize_text_field(True) == '1'
        assert sanitize_text_field(False) == ''
        assert sanitize_text_field(None) == ''
        assert sanitize_text_field([1, 2, 3]) == ''
        assert sanitize_text_field({'key': 'value'}) == ''

    def test_empty_string(self):
        assert sanitize_text_field('') == ''


class TestStripAllTags:

    def test_keeps_text_between_tags(self):
        assert strip_all_tags('<p>One</p>\n<p>Two</p>') == 'One\nTwo'

    def test_unclosed_bracket_is_kept(self):
        assert strip_all_tags('1 < 2') == '1 < 2'
        assert strip_all_tags('a < b > c') == 'a < b > c'
        assert strip_all_tags('x<3 and y>2') == 'x<3 and y>2'

    def test_comments_and_closing_tags(self):
        assert strip_all_tags('<!-- note -->Text</p>') == 'Text'
        assert strip_all_tags('<?xml version="1.0"?><w:t>Word</w:t>') == 'Word'


class TestSanitizeKey:

    def test_keys(self):
        assert sanitize_key('Date-Time') == 'date-time'
        assert sanitize_key('Text Area!') == 'textarea'
        assert sanitize_key('text_area') == 'text_area'
        assert sanitize_key('  HTML  ') == 'html'
        assert sanitize_key(None) == ''
        assert sanitize_key(42) == '42'


class TestSanitizeHtmlClass:

    def test_classes(self):
        assert sanitize_html_class('field-input') == 'field-input'
        assert sanitize_html_class('field input!') == 'fieldinput'
        assert sanitize_html_class('Field') == 'ield'


class TestSanitizeAttributeName:

    def test_names(self):
        assert sanitize_attribute_name('Data-Value') == 'data-value'
        assert sanitize_attribute_name('xml:lang') == 'xml:lang'
        assert sanitize_attribute_name('on click="x"') == 'onclickx'
