"""
Modelos de resultado de matching.

Se construyen en cada request; solo SearchRecord se persiste.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from homematch.models.property import Enrichment, Property

MAX_HIGHLIGHTS = 3
MAX_CONCERNS = 2

NO_MATCHES_MESSAGE = "No properties found matching your criteria. Try widening your search."
MATCH_FAILED_MESSAGE = "Matching failed"


class ScoreResult(BaseModel):
    """
    Score de una propiedad para un comprador.

    El score se clampea a [0, 100] y las listas se truncan,
    sin importar si vino del LLM o de las reglas.
    """

    score: int
    highlights: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    reasoning: str = ""

    @field_validator("score")
    @classmethod
    def _clamp(cls, value: int) -> int:
        return max(0, min(100, value))

    @field_validator("highlights")
    @classmethod
    def _cap_highlights(cls, value: list[str]) -> list[str]:
        return value[:MAX_HIGHLIGHTS]

    @field_validator("concerns")
    @classmethod
    def _cap_concerns(cls, value: list[str]) -> list[str]:
        return value[:MAX_CONCERNS]


class Persona(BaseModel):
    """Persona cosmética del comprador."""

    emoji: str
    title: str
    description: str


class ScoredCandidate(BaseModel):
    """Candidato junto a su enrichment y su score."""

    property: Property
    enrichment: Optional[Enrichment] = None
    score: ScoreResult


class MatchResult(BaseModel):
    """Una fila del ranking final."""

    rank: int = Field(..., ge=1)
    property: dict
    enrichment: Optional[dict] = None
    score: int
    highlights: list[str]
    concerns: list[str]
    reasoning: str

    @classmethod
    def from_scored(cls, rank: int, scored: ScoredCandidate) -> "MatchResult":
        return cls(
            rank=rank,
            property=scored.property.to_view(),
            enrichment=scored.enrichment.model_dump() if scored.enrichment else None,
            score=scored.score.score,
            highlights=scored.score.highlights,
            concerns=scored.score.concerns,
            reasoning=scored.score.reasoning,
        )


class MatchMeta(BaseModel):
    candidates: int
    elapsed_ms: int
    ai_powered: bool


class MatchResponse(BaseModel):
    """Respuesta de un matching con resultados."""

    persona: Persona
    matches: list[MatchResult]
    meta: MatchMeta


class NoMatchResponse(BaseModel):
    """Respuesta cuando el filtro no devuelve candidatos. No es un error."""

    matches: list[MatchResult] = Field(default_factory=list)
    persona: Optional[Persona] = None
    message: str = NO_MATCHES_MESSAGE


class SearchRecord(BaseModel):
    """Registro de auditoría de una búsqueda (tabla 'searches')."""

    search_type: str = "free"
    candidates_count: int
    results_count: int
    top_score: int
    scoring_model: str

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para inserción en Supabase."""
        return self.model_dump()
