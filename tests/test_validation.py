"""Validation engine tests: per-type acceptance, required/optional handling,
length bounds and hint composition."""

import pytest

from intake_flow.models.question import Question, QuestionValidation
from intake_flow.validation import compose_hint, normalize_answer, validate


def q(vtype="text", *, required=True, **rule):
    return Question(
        field_key="answer",
        prompt="?",
        validation=QuestionValidation(type=vtype, **rule),
        required=required,
    )


class TestRequired:

    def test_blank_required_rejected(self):
        result = validate(q(), "   ")
        assert not result.valid
        assert result.reason == "This question is required."

    def test_blank_optional_accepted_for_any_type(self):
        for vtype in ("text", "email", "phone", "number", "url"):
            assert validate(q(vtype, required=False), "").valid, vtype

    def test_skip_keyword_on_optional(self):
        question = q("email", required=False)
        assert validate(question, "Skip").valid
        assert normalize_answer(question, " skip ") == ""

    def test_skip_keyword_is_literal_on_required(self):
        question = q(min_length=2)
        assert validate(question, "skip").valid
        assert normalize_answer(question, "skip") == "skip"

    def test_answers_are_trimmed(self):
        assert normalize_answer(q(), "  Jane Doe \n") == "Jane Doe"


class TestTypes:

    @pytest.mark.parametrize("value", ["a@b.co", "jane.doe+jobs@example.org"])
    def test_email_valid(self, value):
        assert validate(q("email"), value).valid

    @pytest.mark.parametrize("value", ["jane", "jane@", "jane@example", "ja ne@example.com"])
    def test_email_invalid(self, value):
        assert not validate(q("email"), value).valid

    @pytest.mark.parametrize("value", ["+1 (555) 123-4567", "0812345678", "1234567"])
    def test_phone_valid(self, value):
        assert validate(q("phone"), value).valid

    @pytest.mark.parametrize("value", ["123456", "+1 555 abc 4567", "1234567890123456"])
    def test_phone_invalid(self, value):
        assert not validate(q("phone"), value).valid

    @pytest.mark.parametrize("value", ["3", "-2", "3.5", ".5", "1e3"])
    def test_number_valid(self, value):
        assert validate(q("number"), value).valid

    @pytest.mark.parametrize("value", ["three", "nan", "inf", "1,000", "3 years"])
    def test_number_invalid(self, value):
        assert not validate(q("number"), value).valid

    @pytest.mark.parametrize(
        "value",
        ["https://github.com/jdoe", "linkedin.com/in/jdoe", "none", "N/A", "Not applicable"],
    )
    def test_url_valid(self, value):
        assert validate(q("url"), value).valid

    @pytest.mark.parametrize("value", ["nothing", "ftp://example.com", "http://localhost", "a b.com"])
    def test_url_invalid(self, value):
        assert not validate(q("url"), value).valid

    def test_custom_pattern(self):
        question = q("custom", pattern=r"^[A-Z]{2}\d{4}$")
        assert validate(question, "AB1234").valid
        result = validate(question, "ab1234")
        assert not result.valid
        assert result.reason == "Your answer is not in the expected format."


class TestLengthBounds:

    def test_min_length(self):
        result = validate(q(min_length=2), "J")
        assert not result.valid
        assert "at least 2" in result.reason

    def test_max_length(self):
        result = validate(q(max_length=5), "abcdef")
        assert not result.valid
        assert "at most 5" in result.reason

    def test_bounds_measured_after_trim(self):
        assert not validate(q(min_length=3), "  ab  ").valid

    def test_bounds_ignored_for_email(self):
        question = q("email", min_length=50)
        assert validate(question, "a@b.co").valid


class TestRuleModel:

    def test_custom_requires_pattern(self):
        with pytest.raises(ValueError):
            QuestionValidation(type="custom")

    def test_custom_pattern_must_compile(self):
        with pytest.raises(ValueError):
            QuestionValidation(type="custom", pattern="([a-z")

    def test_min_not_above_max(self):
        with pytest.raises(ValueError):
            QuestionValidation(min_length=5, max_length=2)


class TestHints:

    def test_required_text_with_bounds(self):
        hint = compose_hint(q(min_length=2, max_length=40))
        assert hint == "Required. Enter your answer as text, 2-40 characters."

    def test_optional_url_mentions_skip(self):
        hint = compose_hint(q("url", required=False))
        assert hint.startswith("Optional.")
        assert '"none"' in hint
        assert 'Reply "skip"' in hint

    def test_phone_hint_states_digit_range(self):
        assert "7-15 digits" in compose_hint(q("phone"))
