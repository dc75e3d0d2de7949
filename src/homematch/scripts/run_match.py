"""
Script para ejecutar un matching puntual.

Lee las respuestas del quiz desde un archivo JSON (o stdin) e imprime
la respuesta de matching en stdout.

Uso:
    python -m homematch.scripts.run_match --answers answers.json
    echo '{"location": "Manchester"}' | python -m homematch.scripts.run_match
"""

import argparse
import asyncio
import json
import sys
import warnings

import structlog

# Suprimir warnings de cleanup de asyncio en Windows
warnings.filterwarnings("ignore", category=ResourceWarning, message=".*unclosed transport.*")

from homematch.config import get_settings
from homematch.database import get_supabase_client
from homematch.matching import MatchingEngine
from homematch.scripts import configure_logging

logger = structlog.get_logger()


def load_answers(path: str) -> dict:
    """Respuestas del quiz; acepta {"answers": {...}} o el dict plano."""
    if path == "-":
        payload = json.load(sys.stdin)
    else:
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)

    if not isinstance(payload, dict):
        raise ValueError("El JSON de respuestas debe ser un objeto")
    answers = payload.get("answers", payload)
    return answers if isinstance(answers, dict) else {}


async def run_match(answers: dict) -> dict:
    """Ejecuta el pipeline de matching."""
    engine = MatchingEngine()
    return await engine.handle_match_request(answers)


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(
        description="Ejecuta un matching comprador -> propiedades"
    )
    parser.add_argument(
        "--answers",
        default="-",
        help="Archivo JSON con las respuestas del quiz ('-' = stdin)",
    )
    args = parser.parse_args()

    configure_logging(get_settings().log_level)

    if not get_supabase_client().is_reachable():
        logger.error("Supabase no disponible, matching cancelado")
        sys.exit(1)

    try:
        result = asyncio.run(run_match(load_answers(args.answers)))
        print(json.dumps(result, indent=2, ensure_ascii=False))
        sys.exit(1 if "error" in result else 0)

    except KeyboardInterrupt:
        logger.info("Matching interrumpido por usuario")
        sys.exit(130)
    except Exception as e:
        logger.error("Error fatal en matching", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
