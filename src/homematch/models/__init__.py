"""
Modelos de datos del sistema.

- BuyerProfile: preferencias del comprador
- Property / Enrichment: datos de listings (solo lectura)
- ScoreResult / MatchResult: resultados de matching
"""

from homematch.models.profile import BuyerProfile
from homematch.models.property import AgentSummary, Enrichment, Property, as_tag_list
from homematch.models.match import (
    MATCH_FAILED_MESSAGE,
    MAX_CONCERNS,
    MAX_HIGHLIGHTS,
    NO_MATCHES_MESSAGE,
    MatchMeta,
    MatchResponse,
    MatchResult,
    NoMatchResponse,
    Persona,
    ScoredCandidate,
    ScoreResult,
    SearchRecord,
)

__all__ = [
    # Perfil
    "BuyerProfile",
    # Listings
    "AgentSummary",
    "Enrichment",
    "Property",
    "as_tag_list",
    # Resultados
    "MATCH_FAILED_MESSAGE",
    "MAX_CONCERNS",
    "MAX_HIGHLIGHTS",
    "NO_MATCHES_MESSAGE",
    "MatchMeta",
    "MatchResponse",
    "MatchResult",
    "NoMatchResponse",
    "Persona",
    "ScoredCandidate",
    "ScoreResult",
    "SearchRecord",
]
