"""
Módulo de análisis con IA.

Provee los proveedores de LLM (Gemini/Groq), el parseo de sus
respuestas y la generación de personas.
"""

from homematch.analysis.json_response import extract_json, strip_code_fences
from homematch.analysis.persona import CANNED_PERSONAS, PersonaGenerator
from homematch.analysis.llm_providers import (
    get_llm_provider,
    BaseLLMProvider,
    DisabledLLMProvider,
    GeminiProvider,
    GroqProvider,
    LLMResponse,
    LLMUnavailableError,
)

__all__ = [
    # Parseo
    "extract_json",
    "strip_code_fences",
    # Persona
    "CANNED_PERSONAS",
    "PersonaGenerator",
    # Proveedores LLM
    "get_llm_provider",
    "BaseLLMProvider",
    "DisabledLLMProvider",
    "GeminiProvider",
    "GroqProvider",
    "LLMResponse",
    "LLMUnavailableError",
]
