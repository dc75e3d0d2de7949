"""
Generador de persona del comprador.

Cosmético: corre en paralelo al scoring y nunca falla el matching.
"""

import random
from typing import Optional

import structlog

from homematch.analysis.json_response import extract_json
from homematch.analysis.llm_providers import BaseLLMProvider
from homematch.models import BuyerProfile, Persona

logger = structlog.get_logger()


PERSONA_USER_PROMPT_TEMPLATE = """Based on this home buyer profile, create a fun 2-sentence buyer persona with an emoji and title.
Profile: {family}, searching in {city}, budget {budget}, wants {outdoor} outdoor space, vibe: {vibe}, priorities: {priorities}, pets: {pets}.
Return ONLY JSON: {{ "emoji": "🌿", "title": "The Urban Gardener", "description": "..." }}"""

CANNED_PERSONAS = (
    Persona(emoji="🏡", title="The Nester", description="Looking for a forever home with room to grow."),
    Persona(emoji="🌆", title="The Urban Explorer", description="Wants the buzz of the city right outside the door."),
    Persona(emoji="🌿", title="The Green Seeker", description="Needs nature, space, and fresh air to feel at home."),
    Persona(emoji="💼", title="The Smart Commuter", description="Location is everything: close to work, close to life."),
)


class PersonaGenerator:
    """Genera {emoji, title, description} a partir del perfil."""

    def __init__(
        self,
        provider: BaseLLMProvider,
        rng: Optional[random.Random] = None,
    ):
        self._provider = provider
        self._rng = rng or random.Random()

    def fallback(self) -> Persona:
        """Persona enlatada elegida al azar."""
        return self._rng.choice(CANNED_PERSONAS)

    def _build_prompt(self, profile: BuyerProfile) -> str:
        return PERSONA_USER_PROMPT_TEMPLATE.format(
            family=profile.family_size,
            city=profile.city,
            budget=profile.budget_range,
            outdoor=profile.outdoor_space,
            vibe=", ".join(profile.vibe),
            priorities=", ".join(profile.priorities),
            pets=profile.pets,
        )

    async def generate(self, profile: BuyerProfile) -> Persona:
        if not self._provider.enabled:
            return self.fallback()

        try:
            response = await self._provider.generate(
                system_prompt="",
                user_prompt=self._build_prompt(profile),
                temperature=0.8,
                max_tokens=200,
            )
            return Persona(**extract_json(response.text))

        except ValueError as e:
            logger.warning("Persona inválida del LLM", error=str(e))
            return self.fallback()
        except Exception as e:
            logger.warning("Error generando persona", error=str(e))
            return self.fallback()
