"""
Scoring de propiedades contra un perfil de comprador.

Dos estrategias con la misma interfaz:
- LLMScorer: rúbrica ponderada evaluada por el LLM configurado
- RuleBasedScorer: reglas aditivas deterministas, siempre disponible

El LLMScorer cae a reglas por propiedad ante cualquier error, timeout
o respuesta inválida; nunca aborta el lote.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Iterator, Optional, Sequence, TypeVar

import structlog
from pydantic import BaseModel

from homematch.analysis.json_response import extract_json
from homematch.analysis.llm_providers import BaseLLMProvider
from homematch.config import (
    BUDGET_BANDS,
    DEFAULT_BUDGET_CEILING,
    normalize_budget_label,
)
from homematch.models import BuyerProfile, Enrichment, Property, ScoredCandidate, ScoreResult

logger = structlog.get_logger()

T = TypeVar("T")

# Rúbrica del LLM (puntos sobre 100). Es orientativa: no se re-pondera.
SCORING_WEIGHTS = {
    "Location & Area": (20, "Does the neighbourhood vibe match? Urban vs suburban vs rural preference?"),
    "Budget Fit": (20, "Is price within or close to their range? Slightly under budget = bonus."),
    "Commute": (15, "How close to their commute priority? Under 20 min = excellent."),
    "Space & Layout": (10, "Enough beds for family size? Garden if they want outdoor space?"),
    "Condition": (10, "Does move-in/renovation match their preference?"),
    "Lifestyle": (8, "Walkability, nearby restaurants/pubs, gym access for active lifestyles."),
    "Vibe Match": (7, "Does neighbourhood feel match what they described?"),
    "Pet Friendly": (5, "Pet-friendly if they have pets? Dog park nearby?"),
    "Parking": (3, "Does parking match their needs?"),
    "Style": (2, "Bonus for preferred architectural style match."),
}

_RUBRIC = "\n".join(
    f"- {name} ({points} pts): {question}"
    for name, (points, question) in SCORING_WEIGHTS.items()
)

SCORING_SYSTEM_PROMPT = f"""You are homematch, an AI property matching assistant. You score how well a property matches a buyer's lifestyle profile.

Score the property from 0-100 based on these weighted criteria:
{_RUBRIC}

Return ONLY a JSON object (no markdown, no backticks):
{{
  "score": 82,
  "highlights": ["15 min walk to city centre", "Large garden for the dog", "Excellent schools nearby"],
  "concerns": ["Slightly above budget", "No garage for EV charging"],
  "reasoning": "A strong match for a family wanting walkability and green space. The Edwardian character fits their 'charming' vibe preference, and the village feel scores high on their family-friendly priority."
}}"""

RULES_REASONING = "Score based on budget fit, commute time, walkability, and lifestyle preferences."

BASELINE_SCORE = 50


def budget_ceiling(label: Optional[str]) -> int:
    """Techo nominal de la etiqueta de presupuesto (500K si es desconocida)."""
    band = BUDGET_BANDS.get(normalize_budget_label(label))
    return band[1] if band else DEFAULT_BUDGET_CEILING


class BaseScorer(ABC):
    """Interfaz común de scoring."""

    uses_llm: bool = False

    @abstractmethod
    async def score(
        self,
        profile: BuyerProfile,
        prop: Property,
        enrichment: Optional[Enrichment] = None,
    ) -> ScoreResult:
        pass


class RuleBasedScorer(BaseScorer):
    """
    Scoring determinista: base 50 más ajustes aditivos.

    El orden de los highlights/concerns es el orden de evaluación y
    define cuáles sobreviven al truncado (3 y 2).
    """

    def evaluate(
        self,
        profile: BuyerProfile,
        prop: Property,
        enrichment: Optional[Enrichment] = None,
    ) -> ScoreResult:
        score = BASELINE_SCORE
        highlights: list[str] = []
        concerns: list[str] = []

        # Presupuesto
        ceiling = budget_ceiling(profile.budget_range)
        price = prop.price or 0
        if price <= ceiling:
            score += 15
            if price <= ceiling * 0.85:
                highlights.append("Well within budget")
        elif price <= ceiling * 1.1:
            score += 5
            concerns.append("Slightly above budget")
        else:
            score -= 10
            concerns.append("Above budget")

        # Commute al centro
        commute = prop.commute_city_center
        if commute:
            if commute <= 15:
                score += 15
                highlights.append(f"{commute} min commute")
            elif commute <= 25:
                score += 10
            elif commute <= 40:
                score += 5

        # Walkability
        walkability = prop.walkability or 0
        if walkability >= 8:
            score += 8
            highlights.append("Very walkable area")
        elif walkability >= 6:
            score += 5

        # Mascotas
        if profile.has_pets:
            if prop.pet_friendly:
                score += 5
                highlights.append("Pet-friendly")
            else:
                concerns.append("Not pet-friendly")

        # Jardín
        features = {f.lower() for f in prop.features}
        if profile.outdoor_space == "Big garden" and "garden" in features:
            score += 5
            highlights.append("Has garden")

        # Escuelas
        if (prop.schools_quality or "").lower() == "excellent":
            score += 5
            highlights.append("Excellent schools")

        # ScoreResult clampea y trunca
        return ScoreResult(
            score=score,
            highlights=highlights,
            concerns=concerns,
            reasoning=RULES_REASONING,
        )

    async def score(
        self,
        profile: BuyerProfile,
        prop: Property,
        enrichment: Optional[Enrichment] = None,
    ) -> ScoreResult:
        return self.evaluate(profile, prop, enrichment)


class LLMScorePayload(BaseModel):
    """Forma exacta que se le pide al LLM."""

    score: int
    highlights: list[str]
    concerns: list[str]
    reasoning: str


def parse_score_response(text: str) -> Optional[ScoreResult]:
    """
    Valida la respuesta del LLM.

    Returns:
        ScoreResult si la respuesta tiene la forma pedida, None si hay
        que caer a reglas
    """
    try:
        payload = LLMScorePayload.model_validate(extract_json(text))
    except ValueError as e:
        logger.warning("Respuesta de scoring inválida", error=str(e), response=(text or "")[:200])
        return None
    return ScoreResult(**payload.model_dump())


def _join(values: Sequence[str]) -> str:
    return ", ".join(values)


def _money(value: Optional[float], symbol: str = "£") -> str:
    return f"{symbol}{value:,.0f}" if value is not None else "Unknown"


class LLMScorer(BaseScorer):
    """Scoring con LLM y caída a reglas por propiedad."""

    uses_llm = True

    def __init__(
        self,
        provider: BaseLLMProvider,
        fallback: Optional[RuleBasedScorer] = None,
        timeout: float = 30.0,
    ):
        self._provider = provider
        self._fallback = fallback or RuleBasedScorer()
        self._timeout = timeout

    def build_prompt(
        self,
        profile: BuyerProfile,
        prop: Property,
        enrichment: Optional[Enrichment] = None,
    ) -> str:
        """Serializa perfil, propiedad y enrichment para el LLM."""
        symbol = "€" if (prop.currency or "").upper() == "EUR" else "£"

        prompt = f"""
BUYER PROFILE:
- City: {profile.city}
- Budget: {profile.budget_range}
- Family: {profile.family_size}
- Commute priority: {profile.commute_priority}
- Property condition: {profile.property_condition}
- Outdoor space: {profile.outdoor_space}
- Vibe preferences: {_join(profile.vibe)}
- Pets: {profile.pets}
- Parking needs: {profile.parking}
- Dealbreakers: {_join(profile.dealbreakers)}
- Priorities: {_join(profile.priorities)}
- Lifestyle: {_join(profile.lifestyle)}

PROPERTY:
- Name: {prop.title}
- Price: {_money(prop.price, symbol)}
- Beds: {prop.beds}, Baths: {prop.baths}
- Size: {prop.sqm}m²
- Type: {prop.property_type}, Style: {prop.style}
- Condition: {prop.condition}
- City: {prop.city}, Area: {prop.region}
- Walkability: {prop.walkability}/10
- Schools: {prop.schools_quality}
- Parking: {_join(prop.parking)}
- Pet-friendly: {prop.pet_friendly}
- Dog park nearby: {prop.nearby_dog_park}
- Neighbourhood vibe: {_join(prop.neighborhood_vibe)}
- Features: {_join(prop.features)}
- Commute to city centre: {prop.commute_city_center} min
- EPC rating: {prop.epc_rating or 'Unknown'}
"""
        if enrichment:
            prompt += f"""
ENRICHMENT DATA:
- Nearest grocery: {enrichment.nearest_grocery_m}m ({enrichment.nearest_grocery_name})
- Nearest station: {enrichment.nearest_station_m}m
- Nearest park: {enrichment.nearest_park_m}m
- Restaurants within 1km: {enrichment.restaurant_count_1km}
- Walk score: {enrichment.walkability_score}/100
- Area avg price: {_money(enrichment.avg_price_area, symbol)}
- Price trend (1yr): {enrichment.price_trend_1yr_pct}%
"""
        return prompt + "\nScore this property for this buyer."

    async def score(
        self,
        profile: BuyerProfile,
        prop: Property,
        enrichment: Optional[Enrichment] = None,
    ) -> ScoreResult:
        try:
            response = await asyncio.wait_for(
                self._provider.generate(
                    system_prompt=SCORING_SYSTEM_PROMPT,
                    user_prompt=self.build_prompt(profile, prop, enrichment),
                    temperature=0.2,
                    max_tokens=500,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Timeout de scoring LLM", property_id=prop.id, timeout=self._timeout)
            return self._fallback.evaluate(profile, prop, enrichment)
        except Exception as e:
            logger.error("Error en scoring LLM", property_id=prop.id, error=str(e))
            return self._fallback.evaluate(profile, prop, enrichment)

        result = parse_score_response(response.text)
        if result is None:
            return self._fallback.evaluate(profile, prop, enrichment)
        return result


def build_scorer(provider: BaseLLMProvider, timeout: float = 30.0) -> BaseScorer:
    """LLMScorer si el proveedor está habilitado, si no reglas."""
    if provider.enabled:
        return LLMScorer(provider, timeout=timeout)
    return RuleBasedScorer()


def batched(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Parte una secuencia en grupos consecutivos de `size`."""
    if size < 1:
        raise ValueError("El tamaño de lote debe ser >= 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def score_candidates(
    scorer: BaseScorer,
    profile: BuyerProfile,
    candidates: Sequence[tuple[Property, Optional[Enrichment]]],
    batch_size: int = 5,
    top_n: int = 5,
) -> list[ScoredCandidate]:
    """
    Scorea todos los candidatos y devuelve los `top_n` mejores.

    Cada lote corre en paralelo y se espera completo antes del
    siguiente, así nunca hay más de `batch_size` llamadas al LLM en
    vuelo. gather preserva el orden: scores[j] es de batch[j].
    El ordenamiento es estable ante empates.
    """
    results: list[ScoredCandidate] = []

    for batch in batched(candidates, batch_size):
        scores = await asyncio.gather(
            *(scorer.score(profile, prop, enrichment) for prop, enrichment in batch)
        )
        for (prop, enrichment), score in zip(batch, scores):
            results.append(ScoredCandidate(property=prop, enrichment=enrichment, score=score))

    results.sort(key=lambda r: r.score.score, reverse=True)
    return results[:top_n]
