"""
Enrichment con APIs públicas del gobierno UK.

- EPC Register: certificados de eficiencia energética
- Land Registry: precios pagados (SPARQL)

Cada fuente devuelve None ante cualquier fallo; el enrichment de una
propiedad nunca rompe el proceso.
"""

import asyncio
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from homematch.config import Settings, get_settings

logger = structlog.get_logger()

EPC_CERTIFICATE_URL = "https://find-energy-certificate.service.gov.uk/energy-certificate/{hash}"

LAND_REGISTRY_QUERY = """
PREFIX lrppi: <http://landregistry.data.gov.uk/def/ppi/>
PREFIX lrcommon: <http://landregistry.data.gov.uk/def/common/>
SELECT ?date ?price ?propertyType
WHERE {{
  ?tx lrppi:pricePaid ?price ;
      lrppi:transactionDate ?date ;
      lrppi:propertyAddress ?addr ;
      lrppi:propertyType ?propertyType .
  ?addr lrcommon:postcode "{postcode}" .
}}
ORDER BY DESC(?date) LIMIT 20"""

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_POSTCODE_CHARS = re.compile(r"[^A-Z0-9 ]")


def normalize_address(value: Optional[str]) -> str:
    """'12 High St.' -> '12highst'."""
    return _NON_ALNUM.sub("", (value or "").lower())


def clean_postcode(value: Optional[str]) -> str:
    """Postcode en mayúsculas sin caracteres fuera de [A-Z0-9 ]."""
    return _POSTCODE_CHARS.sub("", (value or "").upper()).strip()


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # 29 de febrero
        return day.replace(year=day.year - 1, day=28)


def pick_epc_row(rows: list[dict], address_line1: Optional[str]) -> dict:
    """
    Elige el certificado de la dirección; si no aparece, el primero
    del postcode.
    """
    target = normalize_address(address_line1)
    if target:
        for row in rows:
            if target in normalize_address(row.get("address")):
                return row
    return rows[0]


def summarize_epc(row: dict) -> dict:
    """Campos verificados a partir de una fila del registro EPC."""
    cert_hash = row.get("certificate-hash")
    return {
        "epc_rating_verified": row.get("current-energy-rating"),
        "epc_score_verified": _to_int(row.get("current-energy-efficiency")),
        "epc_url": EPC_CERTIFICATE_URL.format(hash=cert_hash) if cert_hash else None,
    }


def summarize_transactions(bindings: list[dict], today: Optional[date] = None) -> dict:
    """
    Resume las transacciones de Land Registry de un postcode.

    La tendencia a 1 año compara el precio medio de los últimos 12
    meses contra el de las ventas anteriores; sin ambos grupos es None.
    """
    today = today or date.today()

    txns = []
    for binding in bindings:
        txns.append({
            "date": (binding.get("date") or {}).get("value"),
            "price": _to_int((binding.get("price") or {}).get("value")) or 0,
            "type": ((binding.get("propertyType") or {}).get("value") or "").split("/")[-1] or None,
        })

    prices = [t["price"] for t in txns if t["price"] > 0]
    avg_price = round(sum(prices) / len(prices)) if prices else None

    year_ago = _year_before(today)
    recent, older = [], []
    for txn in txns:
        sold_on = _parse_date(txn["date"])
        if sold_on is None:
            continue
        (recent if sold_on >= year_ago else older).append(txn["price"])

    trend = None
    if recent and older:
        avg_recent = sum(recent) / len(recent)
        avg_older = sum(older) / len(older)
        if avg_older:
            trend = round((avg_recent - avg_older) / avg_older * 100, 1)

    last = txns[0] if txns else {}
    return {
        "last_sold_price": last.get("price") or None,
        "last_sold_date": last.get("date"),
        "avg_price_area": avg_price,
        "price_trend_1yr_pct": trend,
        "price_history": txns[:10],
    }


class GovDataEnricher:
    """
    Cliente de las dos fuentes públicas.

    Uso:
        async with GovDataEnricher() as enricher:
            row = await enricher.enrich_property(prop)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self.settings.enrichment_timeout_seconds
        )

    async def __aenter__(self) -> "GovDataEnricher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get_json(
        self,
        url: str,
        params: dict,
        headers: Optional[dict] = None,
    ) -> Optional[dict]:
        response = await self._http.get(url, params=params, headers=headers)
        if response.status_code != 200:
            logger.warning("Respuesta no OK", url=url, status=response.status_code)
            return None
        return response.json()

    async def fetch_epc(
        self,
        postcode: Optional[str],
        address_line1: Optional[str] = None,
    ) -> Optional[dict]:
        """Certificado EPC de la propiedad (o del postcode)."""
        postcode = clean_postcode(postcode)
        if not postcode:
            return None

        headers = {"Accept": "application/json"}
        if self.settings.epc_auth_token:
            headers["Authorization"] = f"Basic {self.settings.epc_auth_token}"

        try:
            data = await self._get_json(
                self.settings.epc_api_url,
                params={"postcode": postcode, "size": 100},
                headers=headers,
            )
            rows = (data or {}).get("rows") or []
            if not rows:
                return None
            return summarize_epc(pick_epc_row(rows, address_line1))

        except Exception as e:
            logger.error("Error en enrichment EPC", postcode=postcode, error=str(e))
            return None

    async def fetch_land_registry(
        self,
        postcode: Optional[str],
        today: Optional[date] = None,
    ) -> Optional[dict]:
        """Historial de precios pagados en el postcode."""
        postcode = clean_postcode(postcode)
        if not postcode:
            return None

        try:
            data = await self._get_json(
                self.settings.land_registry_url,
                params={
                    "output": "json",
                    "query": LAND_REGISTRY_QUERY.format(postcode=postcode),
                },
            )
            bindings = ((data or {}).get("results") or {}).get("bindings") or []
            if not bindings:
                return None
            return summarize_transactions(bindings, today=today)

        except Exception as e:
            logger.error("Error en enrichment Land Registry", postcode=postcode, error=str(e))
            return None

    async def enrich_property(self, prop: dict) -> dict:
        """
        Corre ambas fuentes en paralelo y arma la fila de enrichment.

        Args:
            prop: Fila de 'properties' con id, postcode y address_line1

        Returns:
            Dict listo para upsert en 'property_enrichment'
        """
        epc, land_registry = await asyncio.gather(
            self.fetch_epc(prop.get("postcode"), prop.get("address_line1")),
            self.fetch_land_registry(prop.get("postcode")),
        )

        return {
            "property_id": prop["id"],
            **(epc or {}),
            **(land_registry or {}),
            "enriched_at": datetime.now(timezone.utc).isoformat(),
        }
