"""
Test configuration and fixtures for active-table.

Every test gets its own file-backed SQLite database under pytest's tmp_path,
so schema introspection runs against a real, live schema.
"""

import pytest

from active_table import Database, DatabaseConfig, InMemoryMetadataCache

PRODUCT_DDL = """
    CREATE TABLE product (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(100) NOT NULL,
        price REAL
    )
"""

ORDER_ITEM_DDL = """
    CREATE TABLE order_item (
        order_id INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 1,
        PRIMARY KEY (order_id, product_id)
    )
"""

ORDER_DDL = """
    CREATE TABLE "order" (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(100)
    )
"""

USER_LOGIN_LOG_DDL = """
    CREATE TABLE user_login_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        ip VARCHAR(45)
    )
"""


@pytest.fixture
def database_config(tmp_path):
    """SQLite configuration for testing."""
    return DatabaseConfig.for_sqlite(str(tmp_path / "active_table.db"), environment="test")


@pytest.fixture
def database(database_config):
    """Database handle bound to the per-test SQLite file."""
    db = Database(database_config)
    yield db
    db.dispose()


@pytest.fixture
def metadata_cache():
    """Empty metadata cache."""
    return InMemoryMetadataCache()


@pytest.fixture
def product_table(database):
    """Create the product table."""
    database.query(PRODUCT_DDL)
    return "product"


@pytest.fixture
def seeded_products(database, product_table):
    """Product table holding Widget (id 1) and Gadget (id 2)."""
    database.query("INSERT INTO product (id, name, price) VALUES (?, ?, ?)", 1, "Widget", 9.99)
    database.query("INSERT INTO product (id, name, price) VALUES (?, ?, ?)", 2, "Gadget", 24.5)
    return product_table


@pytest.fixture
def order_item_table(database):
    """Create the order_item table with a composite primary key."""
    database.query(ORDER_ITEM_DDL)
    return "order_item"


@pytest.fixture
def order_table(database):
    """Create a table whose name is a reserved word."""
    database.query(ORDER_DDL)
    return "order"


@pytest.fixture
def user_login_log_table(database):
    """Create the user_login_log table."""
    database.query(USER_LOGIN_LOG_DDL)
    return "user_login_log"
