"""
Construcción del perfil del comprador a partir del quiz.
"""

from typing import Any, Mapping, Optional

from homematch.config import DEFAULT_COUNTRY
from homematch.models import BuyerProfile, as_tag_list


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_profile(answers: Optional[Mapping[str, Any]]) -> BuyerProfile:
    """
    Normaliza las respuestas crudas del quiz en un BuyerProfile.

    Nunca falla: claves faltantes quedan en None, los tags ausentes
    quedan vacíos y un tag escalar se convierte en lista de uno.
    """
    answers = dict(answers or {})

    return BuyerProfile(
        city=_text(answers.get("location")) or _text(answers.get("city")),
        country=(_text(answers.get("market")) or DEFAULT_COUNTRY).upper(),
        radius=answers.get("radius"),
        budget_range=_text(answers.get("budget")),
        family_size=_text(answers.get("family")),
        work_location=_text(answers.get("workLocation")),
        commute_priority=_text(answers.get("commutePriority")),
        property_condition=_text(answers.get("condition")),
        outdoor_space=_text(answers.get("outdoor")),
        pets=_text(answers.get("pets")),
        parking=_text(answers.get("parking")),
        vibe=tuple(as_tag_list(answers.get("vibe"))),
        dealbreakers=tuple(as_tag_list(answers.get("dealbreakers"))),
        priorities=tuple(as_tag_list(answers.get("priorities"))),
        lifestyle=tuple(as_tag_list(answers.get("lifestyle"))),
        raw_answers=answers,
    )
