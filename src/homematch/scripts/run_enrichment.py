"""
Script para enriquecer listings con datos públicos UK.

Consulta EPC y Land Registry para cada listing activo y guarda el
resultado en property_enrichment.

Uso:
    python -m homematch.scripts.run_enrichment
    python -m homematch.scripts.run_enrichment --limit 50
"""

import argparse
import asyncio
import sys
import warnings
from typing import Optional

import structlog

# Suprimir warnings de cleanup de asyncio en Windows
warnings.filterwarnings("ignore", category=ResourceWarning, message=".*unclosed transport.*")

from homematch.config import get_settings
from homematch.database import EnrichmentRepository, PropertyRepository
from homematch.enrichment import GovDataEnricher
from homematch.scripts import configure_logging

logger = structlog.get_logger()


async def run_enrichment(
    limit: int = 100,
    property_repo: Optional[PropertyRepository] = None,
    enrichment_repo: Optional[EnrichmentRepository] = None,
    enricher: Optional[GovDataEnricher] = None,
    pause: float = 0.5,
) -> dict:
    """
    Enriquece hasta `limit` listings activos.

    Args:
        limit: Máximo de listings a procesar
        pause: Segundos entre listings

    Returns:
        Estadísticas del procesamiento
    """
    property_repo = property_repo or PropertyRepository()
    enrichment_repo = enrichment_repo or EnrichmentRepository()
    enricher = enricher or GovDataEnricher()

    stats = {
        "processed": 0,
        "enriched": 0,
        "skipped": 0,
        "errors": 0,
    }

    listings = await asyncio.to_thread(property_repo.list_for_enrichment, limit=limit)
    logger.info("Listings a enriquecer", count=len(listings))

    async with enricher:
        for listing in listings:
            stats["processed"] += 1

            if not listing.get("postcode"):
                stats["skipped"] += 1
                continue

            try:
                row = await enricher.enrich_property(listing)
                await asyncio.to_thread(enrichment_repo.upsert, row)
                stats["enriched"] += 1

            except Exception as e:
                stats["errors"] += 1
                logger.error(
                    "Error enriqueciendo listing",
                    property_id=listing.get("id"),
                    error=str(e),
                )

            # Pequeña pausa para no saturar las APIs públicas
            await asyncio.sleep(pause)

    logger.info("Enrichment completado", **stats)
    return stats


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(
        description="Enriquece listings con EPC y Land Registry"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Máximo de listings a procesar",
    )
    args = parser.parse_args()

    configure_logging(get_settings().log_level)

    try:
        stats = asyncio.run(run_enrichment(limit=args.limit))
        sys.exit(0 if stats["errors"] == 0 else 1)
    except KeyboardInterrupt:
        logger.info("Enrichment interrumpido por usuario")
        sys.exit(130)
    except Exception as e:
        logger.error("Error fatal en enrichment", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
