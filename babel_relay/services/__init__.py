"""
Services module
Export all services
"""

from babel_relay.services.translation_service import (
    IdentityTranslator,
    LLMTranslator,
    Translator,
    get_translator,
)

__all__ = [
    "Translator",
    "IdentityTranslator",
    "LLMTranslator",
    "get_translator",
]
