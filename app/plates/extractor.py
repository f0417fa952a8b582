from __future__ import annotations

"""Selectors and result-table parsing for the plate lookup site."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .results import RECORD_FIELDS


@dataclass(frozen=True)
class PlateSiteSelectors:
    """Selector hints for the lookup form and its results table.

    The results table lists one vehicle per row; its cells map positionally
    onto ``RECORD_FIELDS`` (plate first, owner name last).
    """

    query_input_wait: str = "input[name='term']"
    query_input: str = "input[placeholder='Buscar Patente (ej. DXRZ99)']"
    submit_button: str = "button[type='submit']"
    results_container: str = "table.table.table-hover"
    result_row: str = "tbody tr"
    cell: str = "td"
    field_order: Tuple[str, ...] = RECORD_FIELDS


PLATE_SITE_SELECTORS = PlateSiteSelectors()


def record_from_cells(
    cells: Sequence[str], *, selectors: PlateSiteSelectors = PLATE_SITE_SELECTORS
) -> Optional[Dict[str, str]]:
    """Map trimmed cell texts onto named fields.

    Returns ``None`` when the row is too short or carries no plate.
    """

    if len(cells) < len(selectors.field_order):
        return None
    record = {
        name: (cells[index] or "").strip()
        for index, name in enumerate(selectors.field_order)
    }
    if not record.get(selectors.field_order[0]):
        return None
    return record


def parse_results_html(
    html: str, *, selectors: PlateSiteSelectors = PLATE_SITE_SELECTORS
) -> Optional[Dict[str, str]]:
    """Return the record held by the first result row of ``html``."""

    soup = BeautifulSoup(html or "", "html.parser")
    row = soup.select_one(selectors.result_row)
    if row is None:
        return None
    cells: List[str] = [cell.get_text(strip=True) for cell in row.select(selectors.cell)]
    return record_from_cells(cells, selectors=selectors)


__all__ = [
    "PlateSiteSelectors",
    "PLATE_SITE_SELECTORS",
    "record_from_cells",
    "parse_results_html",
]
