"""
Property-based tests for internationalization (i18n) module.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from hirepass.enums import RefusalReason
from hirepass.i18n import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    TRANSLATIONS,
    get_message,
    get_missing_translations,
    refusal_message,
)


class TestTranslationCoverageProperty:
    """
    *For any* message key, translations SHALL exist for every supported
    language, and every refusal reason SHALL have a message.
    """

    def test_all_languages_have_all_translations(self) -> None:
        for language in SUPPORTED_LANGUAGES:
            assert get_missing_translations(language) == set()

    @given(reason=st.sampled_from(list(RefusalReason)), language=st.sampled_from(sorted(SUPPORTED_LANGUAGES)))
    @settings(max_examples=50)
    def test_every_refusal_has_message(self, reason: RefusalReason, language: str) -> None:
        message = refusal_message(reason, language, service="x")
        assert message != f"refused.{reason.value}"
        assert message == TRANSLATIONS[f"refused.{reason.value}"][language].format(service="x")


class TestGetMessage:

    @given(key=st.sampled_from(list(TRANSLATIONS.keys())))
    @settings(max_examples=100)
    def test_unsupported_language_falls_back(self, key: str) -> None:
        assert get_message(key, "fr") == get_message(key, DEFAULT_LANGUAGE)

    def test_unknown_key_returns_key(self) -> None:
        assert get_message("no.such.key", "en") == "no.such.key"

    def test_formatting(self) -> None:
        assert get_message("password.generated", "en", index=1, password="90032") == (
            "Password generated - Index 1: 90032"
        )

    def test_missing_format_argument_keeps_template(self) -> None:
        assert get_message("password.undone", "en", other=1) == TRANSLATIONS["password.undone"]["en"]
