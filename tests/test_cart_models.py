"""
Tests for cart models and the merge rule
"""

from decimal import Decimal

import pytest

from storefront.cart import CartLine, CartSnapshot, CartState, CartStatus, RemoteLine, merge_lines


class TestCartLine:
    """Tests for CartLine dataclass."""

    def test_unit_price_normalized_to_decimal(self):
        line = CartLine(product_id="A", quantity=2, unit_price=19.99)

        assert line.unit_price == Decimal("19.99")
        assert line.line_total == Decimal("39.98")

    def test_from_product(self, product_a):
        line = CartLine.from_product(product_a, 3)

        assert line.product_id == "A"
        assert line.quantity == 3
        assert line.unit_price == Decimal("49.90")
        assert line.display_name == "Mechanical Keyboard"
        assert line.image_ref == "kb.png"

    def test_dict_round_trip(self):
        line = CartLine(product_id="A", quantity=2, unit_price=Decimal("5.10"), display_name="Pen")

        data = line.to_dict()
        assert data["unit_price"] == "5.10"

        assert CartLine.from_dict(data) == line

    @pytest.mark.parametrize(
        "record",
        [
            {"quantity": 1, "unit_price": "1.00"},
            {"product_id": "", "quantity": 1, "unit_price": "1.00"},
            {"product_id": "A", "quantity": 0, "unit_price": "1.00"},
            {"product_id": "A", "quantity": "2", "unit_price": "1.00"},
            {"product_id": "A", "quantity": True, "unit_price": "1.00"},
            {"product_id": "A", "quantity": 1, "unit_price": "abc"},
            {"product_id": "A", "quantity": 1, "unit_price": "-3"},
            {"product_id": "A", "quantity": 1},
        ],
    )
    def test_from_dict_rejects_invalid_records(self, record):
        with pytest.raises((KeyError, TypeError, ValueError)):
            CartLine.from_dict(record)

    def test_lines_are_immutable(self):
        line = CartLine(product_id="A", quantity=1, unit_price=1)

        with pytest.raises(AttributeError):
            line.quantity = 5


class TestCartState:
    """Tests for CartState."""

    def test_empty_state(self):
        state = CartState()

        assert state.is_empty
        assert len(state) == 0
        assert state.total_items == 0
        assert state.total_price == Decimal("0")

    def test_totals(self):
        state = CartState(lines=[
            CartLine(product_id="A", quantity=2, unit_price=Decimal("10.00")),
            CartLine(product_id="B", quantity=1, unit_price=Decimal("2.50")),
        ])

        assert state.total_items == 3
        assert state.total_price == Decimal("22.50")
        assert state.quantities() == {"A": 2, "B": 1}

    def test_from_list_folds_duplicate_products(self):
        state = CartState.from_list([
            {"product_id": "A", "quantity": 1, "unit_price": "3.00"},
            {"product_id": "A", "quantity": 2, "unit_price": "3.00"},
        ])

        assert state.quantities() == {"A": 3}

    def test_from_list_rejects_non_list(self):
        with pytest.raises(TypeError):
            CartState.from_list({"product_id": "A"})


class TestCartSnapshot:
    def test_to_dict(self):
        line = CartLine(product_id="A", quantity=2, unit_price=Decimal("1.25"))
        snapshot = CartSnapshot(
            lines=(line,),
            status=CartStatus.ANONYMOUS,
            user_id=None,
            total_items=2,
            total_price=Decimal("2.50"),
        )

        data = snapshot.to_dict()
        assert data["status"] == "anonymous"
        assert data["is_empty"] is False
        assert data["total_price"] == "2.50"
        assert data["items"][0]["product_id"] == "A"


class TestMergeLines:
    """Tests for the additive sign-in merge."""

    def test_overlapping_quantities_are_added(self, product_a, product_b):
        remote = [RemoteLine("A", 1, product_a), RemoteLine("B", 3, product_b)]
        local = [CartLine(product_id="A", quantity=2, unit_price=Decimal("49.90"))]

        merged = merge_lines(remote, local)

        assert [(line.product_id, line.quantity) for line in merged] == [("A", 3), ("B", 3)]

    def test_local_only_lines_are_appended(self, product_a):
        remote = [RemoteLine("A", 1, product_a)]
        local = [CartLine(product_id="Z", quantity=4, unit_price=1, display_name="Local")]

        merged = merge_lines(remote, local)

        assert [line.product_id for line in merged] == ["A", "Z"]
        assert merged[1].display_name == "Local"

    def test_remote_metadata_wins(self, product_a):
        remote = [RemoteLine("A", 1, product_a)]
        local = [CartLine(product_id="A", quantity=1, unit_price=Decimal("10.00"), display_name="Old")]

        merged = merge_lines(remote, local)

        assert merged[0].unit_price == Decimal("49.90")
        assert merged[0].display_name == "Mechanical Keyboard"

    def test_remote_line_without_product_uses_local_metadata(self):
        remote = [RemoteLine("A", 2, None)]
        local = [CartLine(product_id="A", quantity=1, unit_price=Decimal("3.00"), display_name="Pen")]

        merged = merge_lines(remote, local)

        assert merged[0].quantity == 3
        assert merged[0].display_name == "Pen"

    def test_remote_line_without_any_metadata_is_dropped(self):
        merged = merge_lines([RemoteLine("GONE", 2, None)], [])

        assert merged == []

    def test_both_empty(self):
        assert merge_lines([], []) == []
