"""
Tests for Selection and ActiveRow (core/selection.py)
"""

import pytest
from pydantic import BaseModel

from active_table import ActiveRow
from active_table.exceptions import ValidationError


class ProductRecord(BaseModel):
    id: int
    name: str
    price: float


@pytest.fixture
def products(database, seeded_products):
    """Unfiltered selection over the seeded product table."""
    database.query("INSERT INTO product (id, name, price) VALUES (?, ?, ?)", 3, "Gizmo", None)
    return database.table("product")


class TestWhere:
    """Test condition building."""

    def test_builders_do_not_mutate_receiver(self, products):
        filtered = products.where("name", "Widget")

        assert products.count() == 3
        assert filtered.count() == 1

    def test_equality(self, products):
        assert products.where("name", "Gadget").fetch()["id"] == 2

    def test_qualified_column(self, products):
        assert products.where("product.id", 1).fetch()["name"] == "Widget"

    def test_foreign_qualifier_rejected(self, products):
        with pytest.raises(ValidationError, match="does not belong"):
            products.where("customer.id", 1)

    def test_list_value_means_in(self, products):
        rows = products.where("id", [1, 3]).order("id").fetch_all()

        assert [row["id"] for row in rows] == [1, 3]

    def test_none_value_means_is_null(self, products):
        assert [row["name"] for row in products.where("price", None)] == ["Gizmo"]

    @pytest.mark.parametrize("condition, value, expected", [
        ("price > ?", 10, [2]),
        ("price >= ?", 9.99, [1, 2]),
        ("price < ?", 10, [1]),
        ("price <= ?", 24.5, [1, 2]),
        ("id != ?", 1, [2, 3]),
        ("id <> ?", 2, [1, 3]),
        ("name LIKE ?", "G%", [2, 3]),
        ("name not like ?", "G%", [1]),
        ("id IN ?", [2, 3], [2, 3]),
        ("id NOT IN ?", (2, 3), [1]),
        ("price != ?", None, [1, 2]),
    ])
    def test_operator_conditions(self, products, condition, value, expected):
        rows = products.where(condition, value).order("id").fetch_all()

        assert [row["id"] for row in rows] == expected

    def test_mapping_condition(self, products):
        rows = products.where({"name": "Widget", "id != ?": 2}).fetch_all()

        assert [row["id"] for row in rows] == [1]

    def test_column_expression(self, products):
        table = products.table
        rows = products.where(table.c.price > 20).fetch_all()

        assert [row["name"] for row in rows] == ["Gadget"]

    def test_raw_fragment_with_named_params(self, products):
        rows = products.where("price > :minimum AND name <> :name", {"minimum": 1, "name": "Gadget"}).fetch_all()

        assert [row["name"] for row in rows] == ["Widget"]

    def test_raw_fragment_rejects_positional_params(self, products):
        with pytest.raises(ValidationError, match="single mapping"):
            products.where("price > 1 AND id = 2", 5, 6)

    def test_condition_needs_one_value(self, products):
        with pytest.raises(ValidationError, match="exactly one value"):
            products.where("name")

    def test_unknown_column(self, products):
        with pytest.raises(ValidationError, match="Unknown column 'bogus'"):
            products.where("bogus", 1)

    def test_unsupported_condition_type(self, products):
        with pytest.raises(TypeError):
            products.where(42)


class TestReads:
    """Test terminal read operations."""

    def test_order_and_limit(self, products):
        rows = products.where("price != ?", None).order("price DESC").limit(1).fetch_all()

        assert [row["name"] for row in rows] == ["Gadget"]

    def test_limit_with_offset(self, products):
        rows = products.order("id").limit(1, offset=1).fetch_all()

        assert [row["id"] for row in rows] == [2]

    def test_invalid_order_clause(self, products):
        with pytest.raises(ValidationError, match="Invalid order clause"):
            products.order("price; DROP TABLE product")

    def test_fetch_returns_none_when_empty(self, products):
        assert products.where("name", "Nothing").fetch() is None

    def test_iteration(self, products):
        assert sorted(row["id"] for row in products) == [1, 2, 3]

    def test_count_ignores_limit(self, products):
        assert products.limit(1).count() == 3

    def test_get(self, products):
        assert products.get(2)["name"] == "Gadget"
        assert products.get(999) is None

    def test_fetch_pairs(self, products):
        pairs = products.order("name").fetch_pairs("id", "name")

        assert list(pairs.items()) == [(2, "Gadget"), (3, "Gizmo"), (1, "Widget")]

    def test_fetch_pairs_whole_rows(self, products):
        pairs = products.fetch_pairs("name")

        assert pairs["Widget"]["id"] == 1


class TestWrites:
    """Test insert/update/delete through a selection."""

    def test_insert_returns_stored_row(self, database, product_table):
        row = database.table("product").insert({"name": "Widget", "price": 9.99})

        assert isinstance(row, ActiveRow)
        assert row["id"] == 1
        assert row.primary_value == 1

    def test_insert_with_explicit_key(self, database, product_table):
        row = database.table("product").insert({"id": 42, "name": "Answer"})

        assert row["id"] == 42
        assert row["price"] is None

    def test_insert_without_single_primary_key(self, database, order_item_table):
        row = database.table("order_item").insert({"order_id": 1, "product_id": 2, "quantity": 3})

        assert row.to_dict() == {"order_id": 1, "product_id": 2, "quantity": 3}
        assert row.primary_value == (1, 2)

    def test_update_returns_affected_count(self, products):
        assert products.where("name LIKE ?", "G%").update({"price": 1.0}) == 2
        assert products.where("price", 1.0).count() == 2

    def test_update_with_no_values(self, products):
        assert products.update({}) == 0

    def test_delete_returns_affected_count(self, products):
        assert products.where("id", [1, 2]).delete() == 2
        assert products.count() == 1

    def test_get_requires_single_primary_key(self, database, order_item_table):
        with pytest.raises(ValidationError, match="single-column primary key"):
            database.table("order_item").get(1)


class TestActiveRow:
    """Test the fetched row object."""

    def test_mapping_behaviour(self, products):
        row = products.get(1)

        assert row == {"id": 1, "name": "Widget", "price": 9.99}
        assert set(row) == {"id", "name", "price"}
        assert len(row) == 3
        assert row.get("missing") is None

    def test_attribute_access(self, products):
        row = products.get(1)

        assert row.name == "Widget"
        with pytest.raises(AttributeError):
            _ = row.bogus

    def test_table_name(self, products):
        assert products.get(1).table_name == "product"

    def test_update_refreshes_row(self, products):
        row = products.get(1)

        assert row.update({"name": "Renamed"}) is True
        assert row["name"] == "Renamed"
        assert products.get(1)["name"] == "Renamed"

    def test_update_with_nothing_to_write(self, products):
        assert products.get(1).update({}) is False

    def test_update_missing_row(self, products):
        row = products.get(1)
        products.where("id", 1).delete()

        assert row.update({"name": "Ghost"}) is False

    def test_delete(self, products):
        assert products.get(2).delete() == 1
        assert products.get(2) is None

    def test_to_model(self, products):
        record = products.get(2).to_model(ProductRecord)

        assert record == ProductRecord(id=2, name="Gadget", price=24.5)
