"""
Cliente de Supabase.

Un solo cliente por proceso; los repositorios lo reciben inyectado.
"""

from functools import lru_cache
from typing import Optional

import structlog
from supabase import create_client, Client

from homematch.config import Settings, get_settings

logger = structlog.get_logger()

PROPERTIES_TABLE = "properties"
ENRICHMENT_TABLE = "property_enrichment"
SEARCHES_TABLE = "searches"


class SupabaseClient:
    """Wrapper del cliente de Supabase con acceso a las tablas del matcher."""

    def __init__(self, client: Client):
        self._client = client

    @property
    def client(self) -> Client:
        """Acceso directo al cliente de Supabase."""
        return self._client

    def table(self, name: str):
        """Acceso a una tabla específica."""
        return self._client.table(name)

    def is_reachable(self) -> bool:
        """Chequeo liviano de conexión (una fila de properties)."""
        try:
            self.table(PROPERTIES_TABLE).select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.warning("Supabase no responde", error=str(e))
            return False


def build_supabase_client(settings: Optional[Settings] = None) -> SupabaseClient:
    """
    Crea un cliente nuevo a partir de los settings.

    Raises:
        ValueError: Si las credenciales no están configuradas
    """
    settings = settings or get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError(
            "SUPABASE_URL y SUPABASE_KEY son requeridos. "
            "Configura las variables de entorno."
        )

    # La service key saltea RLS; necesaria para escribir auditoría y enrichment
    key = settings.supabase_service_key or settings.supabase_key

    client = create_client(settings.supabase_url, key)
    logger.info("Cliente de Supabase inicializado", url=settings.supabase_url)

    return SupabaseClient(client)


@lru_cache
def get_supabase_client() -> SupabaseClient:
    """Cliente compartido del proceso (singleton cacheado)."""
    return build_supabase_client()
