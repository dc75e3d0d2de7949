"""
Motor de matching entre compradores y propiedades.

Implementa:
- Perfil: respuestas del quiz -> BuyerProfile
- Filtro: query gruesa sobre listings activos (tope 50)
- Scoring: LLM o reglas, por lotes, top 5
- Persona: en paralelo al scoring
"""

import asyncio
import time
import traceback
from typing import Any, Mapping, Optional, Union

import structlog

from homematch.analysis import BaseLLMProvider, PersonaGenerator, get_llm_provider
from homematch.config import Settings, get_settings
from homematch.database import EnrichmentRepository, PropertyRepository, SearchRepository
from homematch.matching.filters import CandidateFilter
from homematch.matching.profile import build_profile
from homematch.matching.scoring import BaseScorer, build_scorer, score_candidates
from homematch.models import (
    MATCH_FAILED_MESSAGE,
    BuyerProfile,
    Enrichment,
    MatchMeta,
    MatchResponse,
    MatchResult,
    NoMatchResponse,
    Property,
    ScoredCandidate,
    SearchRecord,
)

logger = structlog.get_logger()


class MatchingEngine:
    """
    Orquesta un request de matching.

    Flujo:
    1. Construir el perfil desde las respuestas
    2. Filtrar candidatos (vacío -> respuesta "sin resultados", sin scoring)
    3. Leer enrichment de todos los candidatos en una query
    4. Scorear candidatos y generar persona en paralelo
    5. Armar ranking 1..N y registrar la búsqueda (best-effort)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider: Optional[BaseLLMProvider] = None,
        property_repo: Optional[PropertyRepository] = None,
        enrichment_repo: Optional[EnrichmentRepository] = None,
        search_repo: Optional[SearchRepository] = None,
        scorer: Optional[BaseScorer] = None,
        persona_generator: Optional[PersonaGenerator] = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider or get_llm_provider(self.settings)
        self.candidate_filter = CandidateFilter(property_repo, self.settings)
        self.enrichment_repo = enrichment_repo or EnrichmentRepository()
        self.search_repo = search_repo or SearchRepository()
        self.scorer = scorer or build_scorer(
            self.provider, timeout=self.settings.llm_timeout_seconds
        )
        self.persona_generator = persona_generator or PersonaGenerator(self.provider)

    @property
    def ai_powered(self) -> bool:
        """True si el scoring pasa por el LLM."""
        return self.scorer.uses_llm

    async def find_matches(
        self, answers: Optional[Mapping[str, Any]]
    ) -> Union[MatchResponse, NoMatchResponse]:
        """
        Ejecuta el pipeline completo.

        Raises:
            Exception: Errores no previstos; ver handle_match_request
        """
        started = time.perf_counter()

        profile = build_profile(answers)
        logger.info(
            "Perfil construido",
            city=profile.city,
            country=profile.country,
            budget=profile.budget_range,
            family=profile.family_size,
        )

        candidates = await asyncio.to_thread(self.candidate_filter.get_candidates, profile)
        if not candidates:
            logger.info("Sin candidatos", city=profile.city)
            return NoMatchResponse()

        enrichment_map = await self._load_enrichment(candidates)
        pairs = [(prop, enrichment_map.get(prop.id)) for prop in candidates]

        top_matches, persona = await asyncio.gather(
            score_candidates(
                self.scorer,
                profile,
                pairs,
                batch_size=self.settings.scoring_batch_size,
                top_n=self.settings.top_matches,
            ),
            self.persona_generator.generate(profile),
        )

        await self._save_search(profile, len(candidates), top_matches)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Matching completado",
            candidates=len(candidates),
            results=len(top_matches),
            elapsed_ms=elapsed_ms,
            ai_powered=self.ai_powered,
        )

        return MatchResponse(
            persona=persona,
            matches=[
                MatchResult.from_scored(rank, scored)
                for rank, scored in enumerate(top_matches, start=1)
            ],
            meta=MatchMeta(
                candidates=len(candidates),
                elapsed_ms=elapsed_ms,
                ai_powered=self.ai_powered,
            ),
        )

    async def handle_match_request(self, answers: Optional[Mapping[str, Any]]) -> dict:
        """
        Punto de entrada público: siempre devuelve un dict serializable.

        Un error inesperado se loguea completo y se responde con un
        mensaje genérico, sin detalles internos.
        """
        try:
            response = await self.find_matches(answers)
            return response.model_dump(mode="json")
        except Exception as e:
            logger.error(
                "Error en matching",
                error=str(e),
                traceback=traceback.format_exc(),
            )
            return {"error": MATCH_FAILED_MESSAGE}

    async def _load_enrichment(self, candidates: list[Property]) -> dict[str, Enrichment]:
        try:
            rows = await asyncio.to_thread(
                self.enrichment_repo.get_batch, [prop.id for prop in candidates]
            )
        except Exception as e:
            logger.error("Error leyendo enrichment, se sigue sin contexto", error=str(e))
            return {}

        enrichment_map = {}
        for property_id, row in rows.items():
            try:
                enrichment_map[property_id] = Enrichment.model_validate(row)
            except ValueError as e:
                logger.warning("Enrichment inválido ignorado", property_id=property_id, error=str(e))
        return enrichment_map

    async def _save_search(
        self,
        profile: BuyerProfile,
        candidates_count: int,
        top_matches: list[ScoredCandidate],
    ) -> Optional[str]:
        """Registro de auditoría; un fallo acá no afecta la respuesta."""
        record = SearchRecord(
            candidates_count=candidates_count,
            results_count=len(top_matches),
            top_score=top_matches[0].score.score if top_matches else 0,
            scoring_model=self.provider.label if self.ai_powered else "rule-based",
        )
        try:
            return await asyncio.to_thread(self.search_repo.create, record)
        except Exception as e:
            logger.error("Error guardando búsqueda", city=profile.city, error=str(e))
            return None
