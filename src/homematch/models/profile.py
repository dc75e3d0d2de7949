"""
Modelo de Perfil del Comprador

Representación canónica de las respuestas del quiz, inmutable
durante todo el request de matching.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from homematch.config import NO_PETS_ANSWER


class BuyerProfile(BaseModel):
    """
    Preferencias del comprador derivadas del quiz.

    Las etiquetas (presupuesto, familia) se guardan tal cual vienen:
    la traducción a números ocurre en el filtro y en el scorer, que
    nunca rechazan una etiqueta desconocida.
    """

    model_config = ConfigDict(frozen=True)

    # Ubicación
    city: Optional[str] = Field(None, description="Ciudad, región o condado buscado")
    country: str = Field("UK", description="Mercado en mayúsculas")
    radius: Optional[Any] = Field(None, description="Radio de búsqueda declarado")

    # Etiquetas de enumeración fija
    budget_range: Optional[str] = Field(None, description="Ej: '£200K-£400K'")
    family_size: Optional[str] = Field(None, description="Ej: 'Small family (1-2 kids)'")

    # Preferencias sueltas
    work_location: Optional[str] = None
    commute_priority: Optional[str] = None
    property_condition: Optional[str] = None
    outdoor_space: Optional[str] = None
    pets: Optional[str] = None
    parking: Optional[str] = None

    # Tags
    vibe: tuple[str, ...] = Field(default_factory=tuple)
    dealbreakers: tuple[str, ...] = Field(default_factory=tuple)
    priorities: tuple[str, ...] = Field(default_factory=tuple)
    lifestyle: tuple[str, ...] = Field(default_factory=tuple)

    # Trazabilidad
    raw_answers: dict[str, Any] = Field(default_factory=dict)

    @property
    def has_pets(self) -> bool:
        """
        True salvo que el comprador haya respondido 'No pets'.

        Sin respuesta cuenta como con mascotas.
        """
        if self.pets is None:
            return True
        return self.pets.strip().lower() != NO_PETS_ANSWER.lower()
