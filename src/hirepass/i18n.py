"""
Internationalization (i18n) module for the HirePass system.

Provides the user-facing feedback for every registry outcome and CLI
message in English (en) and German (de).
"""

from typing import Optional

from .enums import RefusalReason


SUPPORTED_LANGUAGES = frozenset({"en", "de"})
DEFAULT_LANGUAGE = "en"


# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Applied transitions
    "password.generated": {
        "en": "Password generated - Index {index}: {password}",
        "de": "Passwort erzeugt - Index {index}: {password}",
    },
    "password.undone": {
        "en": "Undone - reverted to index {index}",
        "de": "Rückgängig - zurück auf Index {index}",
    },
    "password.restored": {
        "en": "Restored - reverted to index {index}",
        "de": "Wiederhergestellt - zurück auf Index {index}",
    },
    "password.manual_set": {
        "en": "State updated - set to index {index}",
        "de": "Zustand aktualisiert - auf Index {index} gesetzt",
    },
    "history.cleared": {
        "en": "History cleared",
        "de": "Verlauf gelöscht",
    },
    "service.created": {
        "en": "Service created - added {name}",
        "de": "Dienst angelegt - {name} hinzugefügt",
    },
    "service.deleted": {
        "en": "Service deleted",
        "de": "Dienst gelöscht",
    },
    "service.updated": {
        "en": "Settings updated",
        "de": "Einstellungen aktualisiert",
    },

    # Refusals
    "refused.insufficient_history": {
        "en": "Cannot undo - no previous history available to revert to",
        "de": "Rückgängig nicht möglich - kein früherer Eintrag im Verlauf",
    },
    "refused.entry_not_found": {
        "en": "History entry is no longer available",
        "de": "Verlaufseintrag ist nicht mehr vorhanden",
    },
    "refused.last_service": {
        "en": "Cannot delete - you must have at least one service",
        "de": "Löschen nicht möglich - mindestens ein Dienst wird benötigt",
    },
    "refused.unknown_service": {
        "en": "Unknown service: {service}",
        "de": "Unbekannter Dienst: {service}",
    },
    "refused.invalid_modulus": {
        "en": "Cannot generate - modulus must be greater than zero",
        "de": "Erzeugen nicht möglich - Modulus muss größer als null sein",
    },

    # Input and integrations
    "input.invalid_number": {
        "en": "Invalid input - please enter valid numbers",
        "de": "Ungültige Eingabe - bitte gültige Zahlen eingeben",
    },
    "form.link_parsed": {
        "en": "Link parsed - found {count} fields, please verify mappings",
        "de": "Link ausgewertet - {count} Felder gefunden, bitte Zuordnung prüfen",
    },
    "form.saved": {
        "en": "Configuration saved - Google Form settings updated",
        "de": "Konfiguration gespeichert - Google-Form-Einstellungen aktualisiert",
    },
    "form.sheet_saved": {
        "en": "Configuration saved - info sheet URL updated",
        "de": "Konfiguration gespeichert - Info-Sheet-URL aktualisiert",
    },
    "form.submitted": {
        "en": "Submitted - record sent to Google Form",
        "de": "Gesendet - Eintrag an Google Form übermittelt",
    },
    "form.submit_failed": {
        "en": "Submission failed: {error}",
        "de": "Übermittlung fehlgeschlagen: {error}",
    },
    "form.not_configured": {
        "en": "Configuration missing - please configure the Google Form first",
        "de": "Konfiguration fehlt - bitte zuerst das Google Form einrichten",
    },
    "form.missing_hire_type": {
        "en": "Missing required field - please select a hire type",
        "de": "Pflichtfeld fehlt - bitte eine Mietart auswählen",
    },

    # CLI
    "cli.current": {
        "en": "{name}: index {index}, password {password}",
        "de": "{name}: Index {index}, Passwort {password}",
    },
    "cli.formula": {
        "en": "Formula: (prev * {multiplier} + {addend}) % {modulus}",
        "de": "Formel: (vorher * {multiplier} + {addend}) % {modulus}",
    },
    "cli.history_empty": {
        "en": "No history yet",
        "de": "Noch kein Verlauf",
    },
    "cli.state_error": {
        "en": "Could not open stored state: {error}",
        "de": "Gespeicherter Zustand konnte nicht geöffnet werden: {error}",
    },
    "cli.state_save_error": {
        "en": "Could not save state: {error}",
        "de": "Zustand konnte nicht gespeichert werden: {error}",
    },
}


def get_message(
    key: str,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """
    Get a translated message by key.

    Args:
        key: The message key (e.g., 'password.generated')
        language: Language code ('en' or 'de'). Defaults to DEFAULT_LANGUAGE.
        **kwargs: Format arguments for the message template

    Returns:
        The translated and formatted message string.
        If the key is not found, returns the key itself.

    Examples:
        >>> get_message('history.cleared', 'de')
        'Verlauf gelöscht'
        >>> get_message('password.undone', 'en', index=4)
        'Undone - reverted to index 4'
    """
    if language is None or language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE

    translations = TRANSLATIONS.get(key)
    if translations is None:
        return key

    message = translations.get(language) or translations.get(DEFAULT_LANGUAGE)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except KeyError:
            pass

    return message


def refusal_message(
    reason: RefusalReason,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """User-facing text for a refused or no-op outcome."""
    return get_message(f"refused.{reason.value}", language, **kwargs)


def get_missing_translations(language: str) -> set[str]:
    """Message keys without a translation for language."""
    return {
        key for key, translations in TRANSLATIONS.items()
        if language not in translations
    }
