"""Static property catalog.

All amounts are stored as Decimal strings to avoid float imprecision.
Catalog entries are immutable and process-wide; unit order is display order.
Each table plan is internally consistent: financed is derived from the other
fields when the entry is built.
"""
from __future__ import annotations

import json
import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

from .config import CATALOG_ENV
from .plan import PaymentDetail, PaymentPlan, Property, Unit


def _table(
    total: str,
    down_payment: str,
    installments: tuple[str, int],
    annual: tuple[str, int],
    balloon: str,
) -> PaymentPlan:
    inst = PaymentDetail(value=Decimal(installments[0]), count=installments[1])
    ann = PaymentDetail(value=Decimal(annual[0]), count=annual[1])
    total_d = Decimal(total)
    down_d = Decimal(down_payment)
    balloon_d = Decimal(balloon)
    return PaymentPlan(
        total=total_d,
        down_payment=down_d,
        installments=inst,
        annual=ann,
        balloon=balloon_d,
        financed=total_d - (down_d + inst.subtotal + ann.subtotal + balloon_d),
    )


# Static embedded catalog
_PROPERTIES: tuple[Property, ...] = (
    Property(
        id="aurora",
        name="Residencial Aurora",
        units=(
            Unit(
                id="101",
                area=Decimal("68.5"),
                table_plan=_table("500000", "100000", ("5000", 40), ("10000", 4), "20000"),
            ),
            Unit(
                id="102",
                area=Decimal("72"),
                table_plan=_table("540000", "108000", ("5400", 40), ("10800", 4), "21600"),
            ),
            Unit(
                id="201",
                area=Decimal("91.3"),
                table_plan=_table("690000", "138000", ("6900", 40), ("13800", 4), "27600"),
            ),
        ),
    ),
    Property(
        id="horizonte",
        name="Edifício Horizonte",
        units=(
            Unit(
                id="1501",
                area=Decimal("54"),
                table_plan=_table("420000", "63000", ("3500", 36), ("0", 0), "42000"),
            ),
            Unit(
                id="1502",
                area=Decimal("54"),
                table_plan=_table("430000", "86000", ("0", 0), ("21500", 3), "43000"),
            ),
            Unit(
                id="1801",
                area=Decimal("110.75"),
                table_plan=_table("985000", "197000", ("8200", 48), ("24600", 4), "0"),
            ),
        ),
    ),
)


def load_catalog(path: Path) -> tuple[Property, ...]:
    """Read a catalog from a JSON file: a list of Property documents.

    Raises ValueError when the document is malformed.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Catalog {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, list) or not data:
        raise ValueError(f"Catalog {path} must be a non-empty list of properties.")
    try:
        return tuple(Property.from_dict(item) for item in data)
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Catalog {path} has a malformed entry: {exc!r}") from exc


def default_catalog() -> tuple[Property, ...]:
    """The catalog for this process: $PROPOSAL_CATALOG if set, else the embedded one."""
    path = os.environ.get(CATALOG_ENV)
    if path:
        return load_catalog(Path(path))
    return _PROPERTIES


def list_properties(catalog: Optional[tuple[Property, ...]] = None) -> tuple[Property, ...]:
    return _PROPERTIES if catalog is None else catalog


def get_property(property_id: str, catalog: Optional[tuple[Property, ...]] = None) -> Property:
    """Return the property with *property_id*.

    Raises ValueError for unknown ids.
    """
    properties = list_properties(catalog)
    for prop in properties:
        if prop.id == property_id:
            return prop
    raise ValueError(
        f"Unknown property '{property_id}'. "
        f"Available: {', '.join(p.id for p in properties)}"
    )


def get_unit(prop: Property, unit_id: Optional[str]) -> Unit:
    """Return the unit with *unit_id*, or the first unit of *prop* if absent."""
    for unit in prop.units:
        if unit.id == unit_id:
            return unit
    return prop.units[0]
