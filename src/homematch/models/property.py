"""
Modelos de Propiedad y Enrichment.

Ambos se leen de Supabase tal cual; este core nunca los modifica.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def as_tag_list(value: Any) -> list[str]:
    """Normaliza un campo de tags: None -> [], escalar -> [escalar]."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


class AgentSummary(BaseModel):
    """Agente asociado al listing (join opcional)."""

    name: Optional[str] = None
    initials: Optional[str] = None
    phone: Optional[str] = None
    agency: Optional[str] = Field(None, description="Nombre de la agencia")

    @model_validator(mode="before")
    @classmethod
    def _flatten_agency(cls, data: Any) -> Any:
        # Supabase devuelve agency como {"name": ...}
        if isinstance(data, dict) and isinstance(data.get("agency"), dict):
            data = {**data, "agency": data["agency"].get("name")}
        return data


class Property(BaseModel):
    """
    Listing de la tabla 'properties'.

    Se aceptan columnas extra para no romper ante cambios de schema.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    # Identificadores
    id: str = Field(..., description="UUID de Supabase")
    title: Optional[str] = None
    tagline: Optional[str] = None
    description: Optional[str] = None
    listing_status: Optional[str] = None

    # Precio
    price: Optional[float] = None
    currency: Optional[str] = None

    # Características físicas
    beds: Optional[int] = None
    baths: Optional[int] = None
    sqm: Optional[float] = None
    sqft: Optional[float] = None
    property_type: Optional[str] = None
    style: Optional[str] = None
    condition: Optional[str] = None

    # Ubicación
    address_line1: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None

    # Entorno
    walkability: Optional[float] = Field(None, description="0 a 10")
    schools_quality: Optional[str] = None
    pet_friendly: bool = False
    nearby_dog_park: Optional[bool] = None
    parking: list[str] = Field(default_factory=list)
    neighborhood_vibe: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    commute_city_center: Optional[int] = Field(None, description="Minutos al centro")
    epc_rating: Optional[str] = None

    # Media
    image_urls: list[str] = Field(default_factory=list)
    source_url: Optional[str] = None

    agent: Optional[AgentSummary] = Field(None, validation_alias="agents")

    @field_validator("parking", "neighborhood_vibe", "features", "image_urls", mode="before")
    @classmethod
    def _lift_tags(cls, value: Any) -> list[str]:
        return as_tag_list(value)

    @field_validator("pet_friendly", mode="before")
    @classmethod
    def _none_is_false(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("commute_city_center", mode="before")
    @classmethod
    def _round_minutes(cls, value: Any) -> Optional[int]:
        if value is None or value == "":
            return None
        return int(round(float(value)))

    def to_view(self) -> dict:
        """Vista formateada del listing para la respuesta de matching."""
        return {
            "id": self.id,
            "title": self.title,
            "tagline": self.tagline,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "beds": self.beds,
            "baths": self.baths,
            "sqm": self.sqm,
            "sqft": self.sqft,
            "property_type": self.property_type,
            "style": self.style,
            "condition": self.condition,
            "city": self.city,
            "region": self.region,
            "postcode": self.postcode,
            "country": self.country,
            "epc_rating": self.epc_rating,
            "walkability": self.walkability,
            "schools_quality": self.schools_quality,
            "pet_friendly": self.pet_friendly,
            "nearby_dog_park": self.nearby_dog_park,
            "neighborhood_vibe": self.neighborhood_vibe,
            "features": self.features,
            "parking": self.parking,
            "commute_city_center": self.commute_city_center,
            "image_urls": self.image_urls,
            "source_url": self.source_url,
            "agent": self.agent.model_dump() if self.agent else None,
        }


class Enrichment(BaseModel):
    """
    Datos de enrichment por propiedad (tabla 'property_enrichment').

    Todos los campos son opcionales: cada fuente puede faltar.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    property_id: str

    # Amenities cercanos
    nearest_grocery_m: Optional[float] = None
    nearest_grocery_name: Optional[str] = None
    nearest_station_m: Optional[float] = None
    nearest_park_m: Optional[float] = None
    restaurant_count_1km: Optional[int] = None
    walkability_score: Optional[float] = Field(None, description="0 a 100")

    # EPC
    epc_rating_verified: Optional[str] = None
    epc_score_verified: Optional[int] = None
    epc_url: Optional[str] = None

    # Land Registry
    last_sold_price: Optional[int] = None
    last_sold_date: Optional[str] = None
    avg_price_area: Optional[float] = None
    price_trend_1yr_pct: Optional[float] = None
    price_history: list[dict] = Field(default_factory=list)

    enriched_at: Optional[str] = None

    @field_validator("price_history", mode="before")
    @classmethod
    def _none_history(cls, value: Any) -> list:
        return value or []
