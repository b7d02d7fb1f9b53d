"""Indicator addressing modes.

Indicators written before the template hierarchy existed carry free-text
category labels instead of a sub-category reference. Both kinds coexist in
the same table; callers get one of these variants from ``Indicator.address``
and must handle each explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class HierarchicalAddress:
    sub_category_id: str


@dataclass(frozen=True)
class LegacyAddress:
    category_label: str
    sub_category_label: str | None = None


IndicatorAddress = HierarchicalAddress | LegacyAddress


def address_from_columns(
    sub_category_id: str | None,
    legacy_category: str | None,
    legacy_sub_category: str | None,
) -> IndicatorAddress:
    """Build the variant from raw column values, rejecting mixed or empty rows."""
    if sub_category_id is not None:
        if legacy_category is not None or legacy_sub_category is not None:
            raise ValueError("indicator has both hierarchical and legacy addressing")
        return HierarchicalAddress(sub_category_id=sub_category_id)
    if not legacy_category:
        raise ValueError("indicator has neither a sub-category nor a legacy category label")
    return LegacyAddress(category_label=legacy_category, sub_category_label=legacy_sub_category)


def address_columns(address: IndicatorAddress) -> dict[str, str | None]:
    """Column values for persisting an address."""
    if isinstance(address, HierarchicalAddress):
        return {
            "sub_category_id": address.sub_category_id,
            "legacy_category": None,
            "legacy_sub_category": None,
        }
    return {
        "sub_category_id": None,
        "legacy_category": address.category_label,
        "legacy_sub_category": address.sub_category_label,
    }
