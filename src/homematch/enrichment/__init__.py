"""
Enrichment de propiedades con datos públicos UK.

Corre fuera del camino de matching; el matcher solo lee los resultados
de la tabla property_enrichment.
"""

from homematch.enrichment.gov_data import (
    GovDataEnricher,
    pick_epc_row,
    summarize_epc,
    summarize_transactions,
)

__all__ = [
    "GovDataEnricher",
    "pick_epc_row",
    "summarize_epc",
    "summarize_transactions",
]
