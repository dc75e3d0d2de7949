"""
Configuración centralizada del sistema.
Carga variables de entorno y define settings globales.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Encontrar la raíz del proyecto (donde está el .env)
# config.py -> homematch/ -> src/ -> project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Configuración principal de la aplicación."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase
    supabase_url: str = Field(..., description="URL del proyecto Supabase")
    supabase_key: str = Field(..., description="Anon key de Supabase")
    supabase_service_key: Optional[str] = Field(
        None, description="Service role key para operaciones admin"
    )

    # LLM Provider
    llm_provider: str = Field(
        "groq",
        description="Proveedor de LLM a usar: 'gemini' o 'groq'"
    )

    # Gemini
    gemini_api_key: Optional[str] = Field(None, description="API key de Google Gemini")
    gemini_model: str = Field("gemini-2.0-flash", description="Modelo de Gemini a usar")

    # Groq
    groq_api_key: Optional[str] = Field(None, description="API key de Groq")
    groq_model: str = Field(
        "llama-3.3-70b-versatile",
        description="Modelo de Groq a usar (llama-3.1-8b-instant, llama-3.3-70b-versatile)"
    )

    llm_timeout_seconds: float = Field(
        30.0, gt=0, description="Timeout por llamada al LLM antes de caer a reglas"
    )

    # Matching
    scoring_batch_size: int = Field(
        5, ge=1, description="Propiedades scoreadas en paralelo por lote"
    )
    max_candidates: int = Field(50, ge=1, description="Tope de candidatos por búsqueda")
    top_matches: int = Field(5, ge=1, description="Cantidad de resultados devueltos")
    budget_buffer: float = Field(
        0.30, ge=0.0, le=1.0, description="Margen aplicado a la banda de presupuesto"
    )

    # Enrichment (APIs públicas UK)
    epc_api_url: str = Field(
        "https://epc.opendatacommunities.org/api/v1/domestic/search",
        description="Endpoint de búsqueda del registro EPC",
    )
    land_registry_url: str = Field(
        "https://landregistry.data.gov.uk/app/root/qonsole/query",
        description="Endpoint SPARQL de Land Registry Price Paid",
    )
    epc_auth_token: Optional[str] = Field(
        None, description="Token Basic del registro EPC (base64 de email:api_key)"
    )
    enrichment_timeout_seconds: float = Field(
        20.0, gt=0, description="Timeout HTTP para APIs de enrichment"
    )

    # Logging
    log_level: str = Field("INFO", description="Nivel de logging")


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuración cacheada."""
    return Settings()


# Constantes del sistema
ACTIVE_STATUS = "active"

DEFAULT_COUNTRY = "UK"

# Banda nominal [min, max] por etiqueta del quiz
BUDGET_BANDS: dict[str, tuple[int, int]] = {
    "Under £200K": (0, 200_000),
    "£200K-£400K": (200_000, 400_000),
    "£400K-£600K": (400_000, 600_000),
    "£600K-£800K": (600_000, 800_000),
    "£800K+": (800_000, 1_200_000),
    "Under €200K": (0, 200_000),
    "€200K-€400K": (200_000, 400_000),
    "€400K-€600K": (400_000, 600_000),
    "€600K-€800K": (600_000, 800_000),
    "€800K+": (800_000, 1_200_000),
}

# Las etiquetas "+" no tienen techo real para el filtro
OPEN_ENDED_BUDGETS = {"£800K+", "€800K+"}

DEFAULT_BUDGET_CEILING = 500_000

FAMILY_MIN_BEDS: dict[str, int] = {
    "Just me": 1,
    "Me and a partner": 1,
    "Couple": 1,
    "Small family (1-2 kids)": 2,
    "Large family (3+ kids)": 3,
    "Larger family (3+ kids)": 3,
    "Sharing with friends": 2,
    "Housemates": 2,
}

DEFAULT_MIN_BEDS = 1

NO_PETS_ANSWER = "No pets"

_DASHES = re.compile(r"\s*[-–—]\s*")


def normalize_budget_label(label: Optional[str]) -> str:
    """'£200K – £400K' -> '£200K-£400K'."""
    return _DASHES.sub("-", (label or "").strip())
