"""
Lectura de respuestas JSON de LLMs.

La respuesta se trata como texto no confiable: se sacan los bloques
markdown y se exige un objeto JSON.
"""

import json
import re

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remueve ``` y ```json en cualquier posición."""
    return _FENCE.sub("", text or "").strip()


def extract_json(text: str) -> dict:
    """
    Parsea la respuesta del LLM como objeto JSON.

    Raises:
        ValueError: Si el texto no es JSON o no es un objeto
            (json.JSONDecodeError es subclase de ValueError)
    """
    data = json.loads(strip_code_fences(text))
    if not isinstance(data, dict):
        raise ValueError(f"Se esperaba un objeto JSON, llegó {type(data).__name__}")
    return data
