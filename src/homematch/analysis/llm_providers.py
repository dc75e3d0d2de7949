"""
Abstracción de proveedores LLM.

Permite switchear fácilmente entre diferentes proveedores (Gemini, Groq)
sin cambiar el código del scorer. Sin API key configurada se usa
DisabledLLMProvider y todo el matching corre con reglas.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import structlog

from homematch.config import Settings, get_settings

logger = structlog.get_logger()


class LLMUnavailableError(RuntimeError):
    """Se intentó usar el LLM sin proveedor configurado."""


@dataclass
class LLMResponse:
    """Respuesta normalizada de cualquier LLM."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None


class BaseLLMProvider(ABC):
    """Clase base para proveedores de LLM."""

    provider_name: str = "base"
    enabled: bool = True
    model: str = "unknown"

    @property
    def label(self) -> str:
        """Etiqueta para auditoría: el modelo, o 'rule-based' si está apagado."""
        return self.model if self.enabled else "rule-based"

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 500,
    ) -> LLMResponse:
        """
        Genera una respuesta del LLM.

        Args:
            system_prompt: Instrucciones del sistema
            user_prompt: Prompt del usuario
            temperature: Temperatura de generación (0.0-1.0)
            max_tokens: Máximo de tokens a generar

        Returns:
            LLMResponse con el texto generado
        """
        pass


class DisabledLLMProvider(BaseLLMProvider):
    """Variante apagada: nunca llama a la red."""

    provider_name = "disabled"
    enabled = False
    model = "rule-based"

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 500,
    ) -> LLMResponse:
        raise LLMUnavailableError("No hay proveedor de LLM configurado")


class GeminiProvider(BaseLLMProvider):
    """Proveedor de Google Gemini."""

    provider_name = "gemini"

    def __init__(self, api_key: str, model: str):
        from google import genai

        if not api_key:
            raise ValueError("GEMINI_API_KEY no configurada")

        self.api_key = api_key
        self.model = model
        self.client = genai.Client(api_key=self.api_key)
        logger.info("GeminiProvider inicializado", model=self.model)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 500,
    ) -> LLMResponse:
        from google.genai import types

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=user_prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_prompt or None,
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )

        return LLMResponse(
            text=(response.text or "").strip(),
            model=self.model,
            provider=self.provider_name,
        )


class GroqProvider(BaseLLMProvider):
    """
    Proveedor de Groq (LPU inference).

    Modelos disponibles:
    - llama-3.1-8b-instant: Rápido y económico
    - llama-3.3-70b-versatile: Más capaz, mejor respetando el JSON pedido

    Docs: https://console.groq.com/docs/models
    """

    provider_name = "groq"

    def __init__(self, api_key: str, model: str):
        from groq import AsyncGroq

        if not api_key:
            raise ValueError("GROQ_API_KEY no configurada")

        self.api_key = api_key
        self.model = model
        self.client = AsyncGroq(api_key=self.api_key)
        logger.info("GroqProvider inicializado", model=self.model)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 500,
    ) -> LLMResponse:
        messages = [{"role": "user", "content": user_prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        text = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else None

        return LLMResponse(
            text=text.strip(),
            model=self.model,
            provider=self.provider_name,
            tokens_used=tokens,
        )


def get_llm_provider(settings: Optional[Settings] = None) -> BaseLLMProvider:
    """
    Factory para obtener el proveedor de LLM configurado.

    Se llama una vez por proceso y el resultado se inyecta en el scorer
    y en el generador de personas.

    Returns:
        Proveedor configurado, o DisabledLLMProvider si falta la API key

    Raises:
        ValueError: Si el proveedor pedido no existe
    """
    settings = settings or get_settings()
    provider = settings.llm_provider.lower()

    if provider == "groq":
        if not settings.groq_api_key:
            logger.info("GROQ_API_KEY ausente, scoring por reglas")
            return DisabledLLMProvider()
        return GroqProvider(api_key=settings.groq_api_key, model=settings.groq_model)
    elif provider == "gemini":
        if not settings.gemini_api_key:
            logger.info("GEMINI_API_KEY ausente, scoring por reglas")
            return DisabledLLMProvider()
        return GeminiProvider(api_key=settings.gemini_api_key, model=settings.gemini_model)
    else:
        raise ValueError(f"Proveedor LLM no soportado: {provider}. Usar 'gemini' o 'groq'")
