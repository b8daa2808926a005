from decimal import Decimal
from types import SimpleNamespace

import pytest
from venue_booking.domain.errors import InvalidMenuSelectionError
from venue_booking.domain.pricing import (
    PricedMenu,
    calculate_fare,
    normalize_selections,
    selections_from_json,
    selections_to_json,
)


def _package(per_person: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        id=1,
        base_price=Decimal("500.00"),
        per_person_price=Decimal(per_person) if per_person is not None else None,
    )


def _item(item_id: int, price: str, per_person: bool = True) -> SimpleNamespace:
    return SimpleNamespace(id=item_id, price=Decimal(price), priced_per_person=per_person)


def _menus(free_limit: int = 1) -> dict[int, PricedMenu]:
    menu = SimpleNamespace(id=10, package_id=1, free_limit=free_limit)
    items = [_item(100, "12.50"), _item(101, "8.00"), _item(102, "40.00", per_person=False)]
    return {10: PricedMenu(menu=menu, items=items)}


def test_base_fare_only() -> None:
    quote = calculate_fare(_package(), {}, {}, guest_count=20)
    assert quote.base_fare == Decimal("500.00")
    assert quote.extra_charges == Decimal("0.00")
    assert quote.total_fare == Decimal("500.00")


def test_per_person_price_scales_with_guests() -> None:
    quote = calculate_fare(_package("25.00"), {}, {}, guest_count=20)
    assert quote.base_fare == Decimal("1000.00")


def test_most_expensive_items_are_free_up_to_limit() -> None:
    # 40.00 flat is free; 12.50 and 8.00 are charged per guest.
    quote = calculate_fare(_package(), _menus(free_limit=1), {10: [100, 101, 102]}, guest_count=10)
    assert quote.extra_charges == Decimal("205.00")
    assert quote.total_fare == Decimal("705.00")


def test_flat_priced_item_is_charged_once() -> None:
    quote = calculate_fare(_package(), _menus(free_limit=0), {10: [102]}, guest_count=10)
    assert quote.extra_charges == Decimal("40.00")


def test_selection_within_free_limit_costs_nothing() -> None:
    quote = calculate_fare(_package(), _menus(free_limit=3), {10: [100, 101, 102]}, guest_count=10)
    assert quote.extra_charges == Decimal("0.00")


def test_unknown_menu_is_rejected() -> None:
    with pytest.raises(InvalidMenuSelectionError):
        calculate_fare(_package(), _menus(), {99: [100]}, guest_count=10)


def test_item_from_other_menu_is_rejected() -> None:
    with pytest.raises(InvalidMenuSelectionError):
        calculate_fare(_package(), _menus(), {10: [555]}, guest_count=10)


def test_duplicate_items_are_rejected() -> None:
    with pytest.raises(InvalidMenuSelectionError):
        normalize_selections({10: [100, 100]})


def test_selections_json_is_sorted_by_menu() -> None:
    raw = selections_to_json({20: [1], 10: [3, 2]})
    assert raw == [{"menu_id": 10, "item_ids": [3, 2]}, {"menu_id": 20, "item_ids": [1]}]
    assert selections_from_json(raw) == {10: [3, 2], 20: [1]}
    assert selections_from_json(None) == {}
