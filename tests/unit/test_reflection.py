"""
Unit tests for ReflectionValidator.
"""

import pytest

from src.coach.reflection import ReflectionConfig, ReflectionValidator, tokenize
from src.core.errors import TrivialReflectionError

SPECIFIC = (
    "I missed the SQL injection in the login query because I skipped "
    "the string concatenation on the password field"
)


@pytest.fixture
def validator():
    return ReflectionValidator()


class TestTokenize:
    def test_lowercases_and_drops_punctuation(self):
        assert tokenize("Missed: the alg=none check!") == ["missed", "the", "alg", "none", "check"]

    def test_keeps_hyphens_and_apostrophes(self):
        assert tokenize("didn't spot access-control") == ["didn't", "spot", "access-control"]


class TestValidate:
    def test_specific_reflection_accepted(self, validator):
        assert validator.validate(f"  {SPECIFIC}  ") == SPECIFIC

    @pytest.mark.parametrize("text", ["", "   ", "ok", "be more careful next time"])
    def test_short_reflection_rejected(self, validator, text):
        with pytest.raises(TrivialReflectionError) as exc:
            validator.validate(text)
        assert "too short" in exc.value.reason

    def test_non_text_rejected(self, validator):
        assert not validator.is_acceptable(None)

    def test_generic_advice_rejected(self, validator):
        text = "be more careful and try harder and look harder next time ok"
        with pytest.raises(TrivialReflectionError) as exc:
            validator.validate(text)
        assert "generic advice" in exc.value.reason
        assert "be more careful" in exc.value.reason

    def test_generic_phrase_with_specifics_accepted(self, validator):
        text = (
            "Be more careful: I missed the pickle.loads deserialization in the webhook "
            "because I only read the signature check"
        )
        assert validator.is_acceptable(text)

    def test_denylist_matching_ignores_case_and_spacing(self, validator):
        text = "Be   MORE\ncareful, try HARDER, look harder, do better, slow down now"
        reason = validator.rejection_reason(text)
        assert reason is not None and reason.startswith("generic advice")

    def test_custom_config(self):
        validator = ReflectionValidator(ReflectionConfig(min_tokens=2, denylist=("whatever",)))
        assert validator.is_acceptable("weak hash")
        assert not validator.is_acceptable("whatever man")
