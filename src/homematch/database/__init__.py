"""
Módulo de base de datos.

Provee acceso a Supabase: listings, enrichment y auditoría de búsquedas.
"""

from homematch.database.supabase_client import (
    build_supabase_client,
    get_supabase_client,
    SupabaseClient,
)
from homematch.database.repositories import (
    PropertyRepository,
    EnrichmentRepository,
    SearchRepository,
)

__all__ = [
    "build_supabase_client",
    "get_supabase_client",
    "SupabaseClient",
    "PropertyRepository",
    "EnrichmentRepository",
    "SearchRepository",
]
