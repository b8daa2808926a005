"""Fare calculation for a package, its menus and a guest count."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Protocol, Sequence

from .errors import InvalidMenuSelectionError

CENT = Decimal("0.01")


class PackageLike(Protocol):
    id: int
    base_price: Decimal
    per_person_price: Decimal | None


class MenuItemLike(Protocol):
    id: int
    price: Decimal
    priced_per_person: bool


class MenuLike(Protocol):
    id: int
    package_id: int
    free_limit: int


@dataclass(frozen=True)
class PricedMenu:
    menu: MenuLike
    items: Sequence[MenuItemLike]


@dataclass(frozen=True)
class FareQuote:
    base_fare: Decimal
    extra_charges: Decimal
    total_fare: Decimal


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_selections(selections: Mapping[int, Sequence[int]] | None) -> dict[int, list[int]]:
    normalized: dict[int, list[int]] = {}
    for menu_id, item_ids in (selections or {}).items():
        ids = [int(item_id) for item_id in item_ids]
        if len(set(ids)) != len(ids):
            raise InvalidMenuSelectionError(f"duplicate items selected for menu {menu_id}")
        normalized[int(menu_id)] = ids
    return normalized


def calculate_fare(
    package: PackageLike,
    menus: Mapping[int, PricedMenu],
    selections: Mapping[int, Sequence[int]],
    *,
    guest_count: int,
) -> FareQuote:
    """
    Base fare is the package price plus its per-person price for every guest.
    Within each selected menu the `free_limit` most expensive items are included;
    every further item adds its price, multiplied by the guest count unless the
    item is priced flat.
    """
    base = Decimal(package.base_price)
    if package.per_person_price is not None:
        base += Decimal(package.per_person_price) * guest_count

    extra = Decimal("0")
    for menu_id, item_ids in selections.items():
        priced = menus.get(menu_id)
        if priced is None or priced.menu.package_id != package.id:
            raise InvalidMenuSelectionError(f"menu {menu_id} is not part of package {package.id}")
        by_id = {item.id: item for item in priced.items}
        unknown = [item_id for item_id in item_ids if item_id not in by_id]
        if unknown:
            raise InvalidMenuSelectionError(f"items {unknown} do not belong to menu {menu_id}")
        chosen = sorted((by_id[item_id] for item_id in item_ids), key=lambda item: (-item.price, item.id))
        for item in chosen[priced.menu.free_limit :]:
            price = Decimal(item.price)
            extra += price * guest_count if item.priced_per_person else price

    base_fare = _money(base)
    extra_charges = _money(extra)
    return FareQuote(base_fare=base_fare, extra_charges=extra_charges, total_fare=base_fare + extra_charges)


def selections_to_json(selections: Mapping[int, Sequence[int]]) -> list[dict[str, object]]:
    return [{"menu_id": menu_id, "item_ids": list(item_ids)} for menu_id, item_ids in sorted(selections.items())]


def selections_from_json(raw: Sequence[Mapping[str, Any]] | None) -> dict[int, list[int]]:
    selections: dict[int, list[int]] = {}
    for entry in raw or []:
        selections[int(entry["menu_id"])] = [int(item_id) for item_id in entry["item_ids"]]
    return selections
