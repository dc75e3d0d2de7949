"""
Filtro de candidatos.

Traduce el perfil a filtros gruesos sobre la tabla de listings. El
filtro es amplio: el juicio fino de presupuesto lo hace el scorer.
"""

import math
from typing import Optional

import structlog

from homematch.config import (
    BUDGET_BANDS,
    DEFAULT_MIN_BEDS,
    FAMILY_MIN_BEDS,
    OPEN_ENDED_BUDGETS,
    Settings,
    get_settings,
    normalize_budget_label,
)
from homematch.database import PropertyRepository
from homematch.models import BuyerProfile, Property

logger = structlog.get_logger()


def budget_band(label: Optional[str], buffer: float = 0.30) -> tuple[float, float]:
    """
    Banda de precio [min, max] con margen para una etiqueta del quiz.

    '£200K-£400K' con 30% -> (140000, 520000). Las etiquetas abiertas
    ('£800K+') y las desconocidas no tienen techo.
    """
    key = normalize_budget_label(label)
    if key not in BUDGET_BANDS:
        return 0.0, math.inf

    low, high = BUDGET_BANDS[key]
    max_price = math.inf if key in OPEN_ENDED_BUDGETS else round(high * (1 + buffer))
    return round(low * (1 - buffer)), max_price


def min_beds(family_size: Optional[str]) -> int:
    """Mínimo de dormitorios según el tamaño de familia."""
    return FAMILY_MIN_BEDS.get((family_size or "").strip(), DEFAULT_MIN_BEDS)


class CandidateFilter:
    """Obtiene hasta `max_candidates` listings activos para un perfil."""

    def __init__(
        self,
        repository: Optional[PropertyRepository] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository or PropertyRepository()

    def get_candidates(self, profile: BuyerProfile) -> list[Property]:
        """
        Candidatos para el perfil.

        Si la query filtrada falla se cae a un scan de activos con el
        mismo tope. Una lista vacía es un resultado válido.
        """
        limit = self.settings.max_candidates
        min_price, max_price = budget_band(profile.budget_range, self.settings.budget_buffer)

        try:
            rows = self.repository.search_candidates(
                location=profile.city,
                min_price=min_price if min_price > 0 else None,
                max_price=max_price if math.isfinite(max_price) else None,
                min_beds=min_beds(profile.family_size),
                # Sin mercado elegido no se filtra por país (filas NULL o "GB")
                country=profile.country if profile.raw_answers.get("market") else None,
                limit=limit,
            )
        except Exception as e:
            logger.error("Error en query de candidatos, usando scan", error=str(e))
            try:
                rows = self.repository.get_active(limit=limit)
            except Exception as e:
                logger.error("Scan de respaldo falló", error=str(e))
                return []

        candidates = []
        for row in rows[:limit]:
            try:
                candidates.append(Property.model_validate(row))
            except ValueError as e:
                logger.warning("Listing inválido descartado", id=row.get("id"), error=str(e))

        logger.info(
            "Candidatos obtenidos",
            city=profile.city,
            budget=profile.budget_range,
            count=len(candidates),
        )
        return candidates
