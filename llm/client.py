"""Multi-provider LLM client with fallback support"""

import asyncio
import logging
from typing import Optional, List

import anthropic
import openai

from core.exceptions import LLMError
from core.enums import LLMProvider
from config import settings

logger = logging.getLogger(__name__)


class LLMClient:
    """Multi-provider LLM client with automatic fallback"""

    def __init__(self):
        self.providers = self._initialize_providers()
        self.provider_priority = settings.get_llm_provider_priority()
        self.max_retries = settings.LLM_MAX_RETRIES
        self.retry_delay = settings.LLM_RETRY_DELAY
        self.timeout = settings.LLM_TIMEOUT

    def _initialize_providers(self) -> dict:
        """Initialize available LLM providers"""
        providers = {}

        if settings.ANTHROPIC_API_KEY:
            providers[LLMProvider.ANTHROPIC] = anthropic.Anthropic(
                api_key=settings.ANTHROPIC_API_KEY,
                timeout=settings.LLM_TIMEOUT
            )

        if settings.OPENAI_API_KEY:
            providers[LLMProvider.OPENAI] = openai.OpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.LLM_TIMEOUT
            )

        if not providers:
            raise LLMError(
                "No LLM providers available. "
                "Please configure at least one API key."
            )

        return providers

    def _get_available_providers(self) -> List[LLMProvider]:
        """Get list of available providers in priority order"""
        available = []
        for provider_name in self.provider_priority:
            try:
                provider = LLMProvider(provider_name)
            except ValueError:
                logger.warning("Unknown LLM provider in priority list: %s", provider_name)
                continue
            if provider in self.providers:
                available.append(provider)
        return available

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.0
    ) -> str:
        """
        Send completion request with automatic fallback

        Args:
            prompt: User prompt
            system: System prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            Response text

        Raises:
            LLMError: If all providers fail
        """
        max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        available_providers = self._get_available_providers()

        if not available_providers:
            raise LLMError("No available LLM providers")

        last_error = None

        # Try each provider in priority order
        for provider in available_providers:
            for attempt in range(self.max_retries):
                try:
                    return await self._call_provider(
                        provider=provider,
                        prompt=prompt,
                        system=system,
                        max_tokens=max_tokens,
                        temperature=temperature
                    )
                except Exception as e:
                    last_error = e
                    logger.warning(
                        "LLM call to %s failed (attempt %d/%d): %s",
                        provider.value, attempt + 1, self.max_retries, e
                    )
                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(self.retry_delay * (2 ** attempt))

        raise LLMError(
            f"All LLM providers failed. Last error: {last_error}",
            provider=available_providers[-1].value,
            retries=self.max_retries
        )

    async def _call_provider(
        self,
        provider: LLMProvider,
        prompt: str,
        system: Optional[str],
        max_tokens: int,
        temperature: float
    ) -> str:
        """Call specific LLM provider"""
        if provider == LLMProvider.ANTHROPIC:
            return await self._call_anthropic(prompt, system, max_tokens, temperature)
        elif provider == LLMProvider.OPENAI:
            return await self._call_openai(prompt, system, max_tokens, temperature)
        else:
            raise LLMError(f"Unknown provider: {provider}")

    async def _call_anthropic(
        self,
        prompt: str,
        system: Optional[str],
        max_tokens: int,
        temperature: float
    ) -> str:
        """Call Anthropic Claude API"""
        client = self.providers[LLMProvider.ANTHROPIC]
        system_prompt = system or self._default_system_prompt()

        # Run in executor to avoid blocking
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: client.messages.create(
                model=settings.ANTHROPIC_MODEL,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature
            )
        )

        return response.content[0].text

    async def _call_openai(
        self,
        prompt: str,
        system: Optional[str],
        max_tokens: int,
        temperature: float
    ) -> str:
        """Call OpenAI API"""
        client = self.providers[LLMProvider.OPENAI]
        system_prompt = system or self._default_system_prompt()

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                max_tokens=max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt}
                ],
                temperature=temperature
            )
        )

        return response.choices[0].message.content

    def _default_system_prompt(self) -> str:
        """Default system prompt for LLM tasks"""
        return (
            "You are a data detective helping analysts answer research questions. "
            "Respond only with valid JSON when requested. "
            "No explanations or markdown unless specifically asked."
        )
