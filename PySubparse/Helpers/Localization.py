import gettext
import logging
import os

_locales_dir = os.getenv('SUBPARSE_LOCALES_DIR', os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'locales'))
_translation : gettext.NullTranslations = gettext.NullTranslations()

def initialize_localization(language : str|None = None) -> None:
    """
    Load message catalogue for the requested language, falling back to untranslated messages
    """
    global _translation
    languages = [language] if language else None
    _translation = gettext.translation('pysubparse', localedir=_locales_dir, languages=languages, fallback=True)
    if type(_translation) is gettext.NullTranslations and language:
        logging.debug(f"No message catalogue for '{language}', using untranslated messages")

def _(text : str) -> str:
    """
    Translate a message with the active catalogue
    """
    return _translation.gettext(text)
