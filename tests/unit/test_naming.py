import pytest

from active_table.core.naming import columns_cache_key, derive_table_name


class TestDeriveTableName:
    """Test table-name derivation from class names."""

    @pytest.mark.parametrize("type_name, expected", [
        ("UserLoginLog", "user_login_log"),
        ("Order", "order"),
        ("VATRate", "v_a_t_rate"),
        ("product", "product"),
        ("OrderItem2", "order_item2"),
        ("A", "a"),
    ])
    def test_camel_case_names(self, type_name, expected):
        assert derive_table_name(type_name) == expected

    def test_separator_before_every_capital(self):
        """Consecutive capitals are split letter by letter, not per word."""
        assert derive_table_name("HTTPLog") == "h_t_t_p_log"

    def test_qualified_name_uses_last_segment(self):
        assert derive_table_name("app.tables.UserLoginLog") == "user_login_log"

    def test_empty_name(self):
        assert derive_table_name("") == ""

    def test_deterministic(self):
        assert derive_table_name("UserLoginLog") == derive_table_name("UserLoginLog")


class TestColumnsCacheKey:
    """Test metadata cache key construction."""

    def test_namespace_separators_normalized(self):
        key = columns_cache_key("app.tables.UserTable")

        assert key == "app-tables-UserTable-get_table_columns"
        assert "." not in key

    def test_distinct_classes_get_distinct_keys(self):
        assert columns_cache_key("a.Product") != columns_cache_key("b.Product")
