"""
Translation Service
翻译适配器 - 纯函数式的 (text, source, target) -> translated

路由器只依赖 Translator 协议；超时和失败都在适配器内部转换为 TranslationFailure。
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol

from loguru import logger
from openai import AsyncOpenAI

from babel_relay.core.config import Settings, settings
from babel_relay.core.exceptions import InvalidConfigError, MissingConfigError, TranslationFailure
from babel_relay.core.logging import log_external_call

# 常用语言标签的可读名称，用于拼接提示词
LANG_NAMES = {
    "pt": "Portuguese",
    "pt-BR": "Brazilian Portuguese",
    "en": "English",
    "en-US": "English",
    "es": "Spanish",
    "es-ES": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
}


class Translator(Protocol):
    """翻译适配器协议"""

    provider: str

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str: ...


class IdentityTranslator:
    """原样返回输入，用于开发环境和测试"""

    provider = "identity"

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        return text


class LLMTranslator:
    """LLM translator backed by an OpenAI-compatible chat completion API"""

    provider = "llm"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 15.0,
        client: AsyncOpenAI | None = None,
    ):
        if not api_key and client is None:
            raise MissingConfigError("LLM_API_KEY")
        self.model = model
        self.timeout = timeout
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    def _build_prompt(self, source_lang: str, target_lang: str) -> str:
        source_name = LANG_NAMES.get(source_lang, source_lang)
        target_name = LANG_NAMES.get(target_lang, target_lang)
        return f"""You are a real-time caption translator.
Translate the user input from {source_name} to {target_name}.

<rules>
1. The input is a single spoken utterance. Keep it short and natural.
2. Do NOT skip or summarize content.
3. Do NOT add explanations, quotes or notes. Only output the translated text.
</rules>"""

    async def _complete(self, text: str, source_lang: str, target_lang: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self._build_prompt(source_lang, target_lang)},
                {"role": "user", "content": text},
            ],
            temperature=0.3,
        )
        content = response.choices[0].message.content
        if not content:
            raise TranslationFailure(
                "empty response from model",
                source_lang=source_lang,
                target_lang=target_lang,
                provider=self.provider,
            )
        return content.strip()

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """翻译单句，超时或任何上游错误都抛出 TranslationFailure"""
        start = time.monotonic()
        try:
            translated = await asyncio.wait_for(
                self._complete(text, source_lang, target_lang),
                timeout=self.timeout,
            )
        except TranslationFailure as e:
            log_external_call("translate", self.model, _elapsed_ms(start), False, e.message)
            raise
        except TimeoutError as e:
            log_external_call("translate", self.model, _elapsed_ms(start), False, "timeout")
            raise TranslationFailure(
                f"timed out after {self.timeout:.1f}s",
                source_lang=source_lang,
                target_lang=target_lang,
                provider=self.provider,
            ) from e
        except Exception as e:
            logger.error(f"LLM translation error: {e}")
            log_external_call("translate", self.model, _elapsed_ms(start), False, str(e))
            raise TranslationFailure(
                str(e),
                source_lang=source_lang,
                target_lang=target_lang,
                provider=self.provider,
            ) from e

        log_external_call("translate", self.model, _elapsed_ms(start), True)
        return translated


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


def get_translator(config: Settings | None = None) -> Translator:
    """根据配置创建翻译适配器"""
    config = config or settings
    provider = config.TRANSLATOR_PROVIDER.lower()

    if provider == "identity":
        logger.warning("Using identity translator: captions will not be translated")
        return IdentityTranslator()
    if provider == "llm":
        return LLMTranslator(
            api_key=config.LLM_API_KEY,
            base_url=config.LLM_BASE_URL,
            model=config.LLM_MODEL,
            timeout=config.TRANSLATION_TIMEOUT,
        )
    raise InvalidConfigError("TRANSLATOR_PROVIDER", config.TRANSLATOR_PROVIDER, "expected 'identity' or 'llm'")
