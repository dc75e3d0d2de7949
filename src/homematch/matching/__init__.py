"""
Motor de matching.

Combina filtros gruesos sobre Supabase con scoring (LLM o reglas)
para encontrar las mejores propiedades para cada comprador.
"""

from homematch.matching.engine import MatchingEngine
from homematch.matching.filters import CandidateFilter, budget_band, min_beds
from homematch.matching.profile import build_profile
from homematch.matching.scoring import (
    BaseScorer,
    LLMScorer,
    RuleBasedScorer,
    build_scorer,
    parse_score_response,
    score_candidates,
)

__all__ = [
    "MatchingEngine",
    "CandidateFilter",
    "budget_band",
    "min_beds",
    "build_profile",
    "BaseScorer",
    "LLMScorer",
    "RuleBasedScorer",
    "build_scorer",
    "parse_score_response",
    "score_candidates",
]
