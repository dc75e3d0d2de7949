"""
Repositorios para operaciones en Supabase.

Cada repositorio maneja una tabla/entidad específica. Las llamadas son
sincrónicas (cliente supabase-py); el engine las corre en un thread.
"""

import re
from typing import Optional

import structlog

from homematch.config import ACTIVE_STATUS
from homematch.database.supabase_client import (
    ENRICHMENT_TABLE,
    PROPERTIES_TABLE,
    SEARCHES_TABLE,
    SupabaseClient,
    get_supabase_client,
)
from homematch.models import SearchRecord

logger = structlog.get_logger()

# Caracteres con significado en la sintaxis de filtros de PostgREST
_POSTGREST_RESERVED = re.compile(r"[,()%*\\]")

AGENT_JOIN = "*, agents(name, initials, phone, agency:agencies(name))"


def sanitize_pattern(value: str) -> str:
    """Limpia un texto libre para usarlo dentro de un patrón ilike."""
    return _POSTGREST_RESERVED.sub("", value).strip()


class BaseRepository:
    """Clase base para repositorios."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_supabase_client()

    @property
    def client(self) -> SupabaseClient:
        return self._client


class PropertyRepository(BaseRepository):
    """Repositorio de listings (solo lectura para el matcher)."""

    TABLE = PROPERTIES_TABLE

    def search_candidates(
        self,
        location: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        min_beds: Optional[int] = None,
        country: Optional[str] = None,
        limit: int = 50,
    ) -> list[dict]:
        """
        Búsqueda de candidatos por filtros gruesos.

        La ubicación matchea por substring (case-insensitive) contra
        city, region o county. Solo listings activos.

        Returns:
            Lista de filas de 'properties' con el agente embebido
        """
        query = (
            self.client.table(self.TABLE)
            .select(AGENT_JOIN)
            .eq("listing_status", ACTIVE_STATUS)
        )

        pattern = sanitize_pattern(location or "")
        if pattern:
            query = query.or_(
                f"city.ilike.%{pattern}%,"
                f"region.ilike.%{pattern}%,"
                f"county.ilike.%{pattern}%"
            )
        if min_price is not None:
            query = query.gte("price", min_price)
        if max_price is not None:
            query = query.lte("price", max_price)
        if min_beds is not None:
            query = query.gte("beds", min_beds)
        if country:
            # ilike sin comodines = igualdad case-insensitive
            query = query.ilike("country", sanitize_pattern(country))

        response = query.limit(limit).execute()
        return response.data or []

    def get_active(self, limit: int = 50) -> list[dict]:
        """Scan mínimo de listings activos, sin joins ni filtros."""
        response = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("listing_status", ACTIVE_STATUS)
            .limit(limit)
            .execute()
        )
        return response.data or []

    def list_for_enrichment(self, limit: int = 100) -> list[dict]:
        """Listings activos con los campos que necesita el enrichment."""
        response = (
            self.client.table(self.TABLE)
            .select("id, postcode, address_line1")
            .eq("listing_status", ACTIVE_STATUS)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []


class EnrichmentRepository(BaseRepository):
    """Repositorio de enrichment por propiedad (1:1 con properties)."""

    TABLE = ENRICHMENT_TABLE

    def get_batch(self, property_ids: list[str]) -> dict[str, dict]:
        """
        Lee el enrichment de varias propiedades en una sola query.

        Returns:
            Mapa property_id -> fila. Las propiedades sin enrichment no aparecen.
        """
        if not property_ids:
            return {}

        response = (
            self.client.table(self.TABLE)
            .select("*")
            .in_("property_id", property_ids)
            .execute()
        )
        return {str(row["property_id"]): row for row in (response.data or [])}

    def upsert(self, enrichment: dict) -> dict:
        """Inserta o reemplaza el enrichment de una propiedad."""
        response = (
            self.client.table(self.TABLE)
            .upsert(enrichment, on_conflict="property_id")
            .execute()
        )
        logger.info("Enrichment guardado", property_id=enrichment.get("property_id"))
        return response.data[0] if response.data else {}


class SearchRepository(BaseRepository):
    """Repositorio de auditoría de búsquedas."""

    TABLE = SEARCHES_TABLE

    def create(self, record: SearchRecord) -> Optional[str]:
        """
        Registra una búsqueda.

        Returns:
            ID del registro creado
        """
        response = (
            self.client.table(self.TABLE)
            .insert(record.to_db_dict())
            .execute()
        )
        return response.data[0].get("id") if response.data else None
