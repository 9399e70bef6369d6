"""Tests for field_attributes: attribute derivation, field text getters and attribute formatting."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from docmerge.field_attributes import (
    build_scalar_input_attributes,
    format_field_attributes,
    get_field_description,
    get_field_pattern_message,
    get_field_title,
    get_field_validation_message,
    parse_int,
)
from docmerge.field_types import InputType


class TestBuildScalarInputAttributes:
    """Test build_scalar_input_attributes precedence and gating."""

    def test_full_number_field(self):
        raw_field = {
            'placeholder': 'Enter value',
            'pattern': '[A-Z]+',
            'length': 100,
            'minvalue': 0,
            'maxvalue': 50,
            'parameters': {
                'required': True,
                'step': '0.5',
            },
        }
        attributes = build_scalar_input_attributes(raw_field, 'number')

        assert attributes['placeholder'] == 'Enter value'
        assert attributes['pattern'] == '[A-Z]+'
        assert attributes['maxlength'] == '100'
        assert attributes['min'] == '0'
        assert attributes['max'] == '50'
        assert attributes['required'] == 'required'
        assert attributes['step'] == '0.5'

    def test_checkbox_has_no_placeholder_pattern_or_maxlength(self):
        raw_field = {'placeholder': 'Should not appear', 'pattern': '.+', 'length': 10}
        attributes = build_scalar_input_attributes(raw_field, 'checkbox')
        assert 'placeholder' not in attributes
        assert 'pattern' not in attributes
        assert 'maxlength' not in attributes

    def test_select_ignores_parameters_placeholder(self):
        raw_field = {'parameters': {'placeholder': 'Pick one'}}
        assert 'placeholder' not in build_scalar_input_attributes(raw_field, InputType.SELECT)

    def test_text_never_gets_min_max(self):
        raw_field = {'minvalue': 1, 'maxvalue': 9, 'parameters': {'min': 2, 'max': 8, 'step': 1}}
        attributes = build_scalar_input_attributes(raw_field, 'text')
        assert 'min' not in attributes
        assert 'max' not in attributes
        assert 'step' not in attributes

    @pytest.mark.parametrize("input_type", ['number', 'range', 'date', 'datetime-local', 'time'])
    def test_numeric_like_types_get_min_max(self, input_type):
        attributes = build_scalar_input_attributes({'minvalue': '1', 'maxvalue': '2'}, input_type)
        assert attributes['min'] == '1'
        assert attributes['max'] == '2'

    def test_top_level_min_max_beat_parameters(self):
        raw_field = {'minvalue': 5, 'parameters': {'min': 1, 'max': 10}}
        attributes = build_scalar_input_attributes(raw_field, 'number')
        assert attributes['min'] == '5'
        assert attributes['max'] == '10'

    def test_top_level_placeholder_beats_parameters(self):
        raw_field = {'placeholder': 'Top', 'parameters': {'placeholder': 'Param'}}
        assert build_scalar_input_attributes(raw_field, 'text')['placeholder'] == 'Top'

        raw_field = {'parameters': {'placeholder': 'Param'}}
        assert build_scalar_input_attributes(raw_field, 'text')['placeholder'] == 'Param'

    @pytest.mark.parametrize("length", [0, -5, '0', 'abc', None])
    def test_non_positive_length_is_dropped(self, length):
        assert 'maxlength' not in build_scalar_input_attributes({'length': length}, 'text')

    def test_length_string_is_coerced(self):
        assert build_scalar_input_attributes({'length': '25chars'}, 'text')['maxlength'] == '25'

    @pytest.mark.parametrize("step,expected", [
        ('0.5', '0.5'),
        (2, '2'),
        (0.25, '0.25'),
        ('0', None),
        (0, None),
        ('-5', None),
        (-0.5, None),
        ('abc', None),
        ('', None),
        ([1], None),
    ])
    def test_step_is_dropped_unless_positive_number(self, step, expected):
        attributes = build_scalar_input_attributes({'parameters': {'step': step}}, 'number')
        assert attributes.get('step') == expected

    def test_textarea_rows(self):
        assert build_scalar_input_attributes({'parameters': {'rows': 5}}, 'textarea')['rows'] == '5'
        assert build_scalar_input_attributes({'parameters': {'rows': '3'}}, 'textarea')['rows'] == '3'
        assert 'rows' not in build_scalar_input_attributes({'parameters': {'rows': 0}}, 'textarea')
        assert 'rows' not in build_scalar_input_attributes({'parameters': {'rows': 5}}, 'text')

    @pytest.mark.parametrize("params,expected", [
        ({'required': 'yes'}, True),
        ({'is_required': 'on'}, True),
        ({'required': 'no', 'is_required': '1'}, True),
        ({'required': -1}, False),
        ({'required': 'false'}, False),
        ({}, False),
    ])
    def test_required_synonyms(self, params, expected):
        attributes = build_scalar_input_attributes({'parameters': params}, 'text')
        assert ('required' in attributes) is expected

    @pytest.mark.parametrize("key", ['readonly', 'read_only', 'disabled'])
    def test_readonly_synonyms(self, key):
        attributes = build_scalar_input_attributes({'parameters': {key: True}}, 'text')
        assert attributes['readonly'] == 'readonly'

    def test_title_prefers_pattern_message(self):
        raw_field = {'title': 'Field Title', 'patternmsg': 'Only capitals'}
        assert build_scalar_input_attributes(raw_field, 'text')['title'] == 'Only capitals'

        raw_field = {'title': 'Field Title'}
        assert build_scalar_input_attributes(raw_field, 'text')['title'] == 'Field Title'

        assert 'title' not in build_scalar_input_attributes({}, 'text')

    def test_parameters_layer_after_top_level(self):
        raw_field = {'placeholder': 'P', 'minvalue': 1, 'parameters': {'required': True, 'max': 4}}
        keys = list(build_scalar_input_attributes(raw_field, 'number').keys())
        assert keys == ['placeholder', 'min', 'required', 'max']

    def test_unknown_keys_and_bad_shapes(self):
        assert build_scalar_input_attributes(None, 'text') == {}
        assert build_scalar_input_attributes("nope", 'text') == {}
        assert build_scalar_input_attributes({'unknown': 'x', 'parameters': 'oops'}, 'text') == {}

    def test_placeholder_is_sanitized(self):
        attributes = build_scalar_input_attributes({'placeholder': '<b>Your</b>   name'}, 'text')
        assert attributes['placeholder'] == 'Your name'


class TestFieldTextGetters:
    """Test the description/title/message getters."""

    def test_get_field_description(self):
        assert get_field_description({'description': 'Test description'}) == 'Test description'
        assert get_field_description({'parameters': {'help': 'Help text'}}) == 'Help text'
        assert get_field_description({'parameters': {'hint': 'Hint', 'help': 'Help'}}) == 'Help'
        assert get_field_description({}) == ''
        assert get_field_description(None) == ''

    def test_get_field_title(self):
        assert get_field_title({'title': 'Field Title'}) == 'Field Title'
        assert get_field_title({'parameters': {'title': 'Param Title'}}) == 'Param Title'
        assert get_field_title({'title': '', 'parameters': {'title': 'Param Title'}}) == 'Param Title'
        assert get_field_title({}) == ''

    def test_get_field_validation_message(self):
        assert get_field_validation_message({'patternmsg': 'Invalid format'}) == 'Invalid format'
        assert get_field_validation_message({'parameters': {'validation_message': 'Please fix'}}) == 'Please fix'
        assert get_field_validation_message({'parameters': {'error': 'Bad'}}) == 'Bad'

    def test_get_field_pattern_message(self):
        assert get_field_pattern_message({'patternmsg': 'Pattern error'}) == 'Pattern error'
        assert get_field_pattern_message({'parameters': {'pattern_message': 'Wrong pattern'}}) == 'Wrong pattern'
        assert get_field_pattern_message({'parameters': {'error': 'Bad'}}) == ''


class TestFormatFieldAttributes:
    """Test format_field_attributes."""

    def test_basic(self):
        result = format_field_attributes({'maxlength': '10', 'required': True, 'readonly': False, 'title': None})
        assert result == 'maxlength="10" required'

    def test_values_are_escaped(self):
        assert format_field_attributes({'title': 'Say "hi" & <go>'}) == 'title="Say &quot;hi&quot; &amp; &lt;go&gt;"'

    def test_names_are_sanitized(self):
        assert format_field_attributes({'Data-Value!': 'x', 'xml:lang': 'en', '***': 'dropped'}) == 'data-value="x" xml:lang="en"'

    def test_empty_or_invalid(self):
        assert format_field_attributes({}) == ''
        assert format_field_attributes(None) == ''
        assert format_field_attributes(['a']) == ''


class TestParseInt:

    @pytest.mark.parametrize("value,expected", [
        (5, 5), ('12px', 12), ('  -3', -3), ('abc', 0), (2.9, 2), (True, 1), (None, 0), (float('inf'), 0),
    ])
    def test_values(self, value, expected):
        assert parse_int(value) == expected
