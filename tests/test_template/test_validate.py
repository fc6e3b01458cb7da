"""Tests for parameter validation and coercion."""

from __future__ import annotations

import pytest

from aiq.exceptions import InvalidUsageError
from aiq.models import ParamDef
from aiq.template import validate_params


class TestRequired:
    def test_missing_required_uses_description_as_hint(self):
        params = {"lang": ParamDef(type="string", required=True, description="Target language")}
        with pytest.raises(InvalidUsageError, match="Required parameter missing: lang") as exc_info:
            validate_params("To {lang}", {}, params)
        assert exc_info.value.hint == "Target language"

    def test_missing_required_without_description(self):
        params = {"lang": ParamDef(type="string", required=True)}
        with pytest.raises(InvalidUsageError) as exc_info:
            validate_params("To {lang}", {}, params)
        assert exc_info.value.hint == "Provide --lang"

    def test_required_satisfied_by_default(self):
        params = {"lang": ParamDef(type="string", required=True, default="fr")}
        values: dict = {}
        validate_params("To {lang}", values, params)
        assert values == {}

    def test_param_not_in_template_is_ignored(self):
        params = {"lang": ParamDef(type="string", required=True)}
        validate_params("No placeholders here", {}, params)


class TestNumberCoercion:
    def test_integer_text_becomes_int(self):
        params = {"n": ParamDef(type="number")}
        values = {"n": "42"}
        validate_params("{n}", values, params)
        assert values["n"] == 42
        assert isinstance(values["n"], int)

    def test_decimal_text_becomes_float(self):
        params = {"n": ParamDef(type="number")}
        values = {"n": "2.5"}
        validate_params("{n}", values, params)
        assert values["n"] == 2.5

    def test_default_is_coerced_into_values(self):
        params = {"n": ParamDef(type="number", default=50)}
        values: dict = {}
        validate_params("{n}", values, params)
        assert values == {"n": 50}

    @pytest.mark.parametrize("raw", ["abc", "NaN", "", "12abc"])
    def test_non_numeric_fails_with_literal_in_hint(self, raw):
        params = {"n": ParamDef(type="number")}
        with pytest.raises(InvalidUsageError, match="Parameter 'n' must be a number") as exc_info:
            validate_params("{n}", {"n": raw}, params)
        assert exc_info.value.hint == f"You provided: {raw}"


class TestBooleanCoercion:
    @pytest.mark.parametrize(("raw", "expected"), [("true", True), ("TRUE", True), ("yes", False), ("false", False)])
    def test_text_coerces_by_comparison_with_true(self, raw, expected):
        params = {"flag": ParamDef(type="boolean")}
        values = {"flag": raw}
        validate_params("{flag}", values, params)
        assert values["flag"] is expected

    def test_real_bool_left_alone(self):
        params = {"flag": ParamDef(type="boolean")}
        values = {"flag": True}
        validate_params("{flag}", values, params)
        assert values["flag"] is True


class TestChoices:
    def test_value_in_choices_passes(self):
        params = {"lang": ParamDef(type="string", choices=["fr", "de"])}
        validate_params("{lang}", {"lang": "de"}, params)

    def test_value_outside_choices_lists_exact_set(self):
        params = {"lang": ParamDef(type="string", choices=["fr", "de", "es"])}
        with pytest.raises(InvalidUsageError, match="Invalid value for 'lang': it") as exc_info:
            validate_params("{lang}", {"lang": "it"}, params)
        assert exc_info.value.hint == "Available choices: fr, de, es"

    def test_numeric_choices_compare_formatted_value(self):
        params = {"n": ParamDef(type="number", choices=[10, 20])}
        values = {"n": "20"}
        validate_params("{n}", values, params)
        assert values["n"] == 20

    def test_float_choice_matches_integral_value(self):
        params = {"n": ParamDef(type="number", choices=[50.0, 100.0])}
        values = {"n": "50"}
        validate_params("{n}", values, params)
        assert values["n"] == 50

    def test_numeric_choice_rejected(self):
        params = {"n": ParamDef(type="number", choices=[10, 20])}
        with pytest.raises(InvalidUsageError, match="Invalid value for 'n': 15"):
            validate_params("{n}", {"n": "15"}, params)


class TestAtomicity:
    def test_failing_call_leaves_values_untouched(self):
        params = {
            "a": ParamDef(type="number"),
            "b": ParamDef(type="number"),
        }
        values = {"a": "1", "b": "oops"}
        with pytest.raises(InvalidUsageError):
            validate_params("{a} {b}", values, params)
        assert values == {"a": "1", "b": "oops"}

    def test_undeclared_placeholders_are_ignored(self):
        values = {"tone": "dry"}
        validate_params("{tone} {input}", values, {})
        assert values == {"tone": "dry"}
