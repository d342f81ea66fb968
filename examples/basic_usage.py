#!/usr/bin/env python3
"""
Basic usage examples for the active-table library.

This example demonstrates:
1. Setting up configuration and a database handle
2. Declaring gateways by class name
3. Writes filtered against the table's columns
4. Reads, uniqueness checks and id -> name pairs
5. Typed partial updates with a pydantic model
"""

import logging
from typing import Optional

from pydantic import BaseModel

from active_table import (
    Database,
    DatabaseConfig,
    InMemoryMetadataCache,
    RowNotFoundError,
    TableGateway,
)


class ProductCategory(TableGateway):
    """Gateway for the product_category table."""


class CategoryRecord(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    position: Optional[int] = None


def main():
    """Demonstrate basic usage of table gateways."""
    logging.basicConfig(level=logging.INFO)

    # 1. Configure the database connection
    print("1. Setting up database configuration...")
    config = DatabaseConfig.for_sqlite()  # In-memory SQLite

    # For a real deployment, you might use:
    # config = DatabaseConfig.from_env()

    database = Database(config)
    cache = InMemoryMetadataCache()
    database.query(
        "CREATE TABLE product_category ("
        " id INTEGER PRIMARY KEY AUTOINCREMENT,"
        " name VARCHAR(100) NOT NULL,"
        " position INTEGER)"
    )

    # 2. Gateways derive their table from the class name
    print("2. Creating gateway...")
    categories = ProductCategory(database, cache)
    print(f"Table: {categories.get_table_name()}, columns: {sorted(categories.columns)}")

    # 3. Unknown fields (e.g. from a submitted form) are dropped
    print("3. Inserting rows...")
    tools = categories.insert({"name": "Tools", "position": 2, "csrf_token": "abc"})
    garden = categories.save({"id": "", "name": "Garden", "position": 1})
    print(f"Inserted: {tools.to_dict()} and {garden.to_dict()}")

    # 4. Reads
    print("4. Reading rows...")
    print(f"By id: {categories.get(tools['id']).to_dict()}")
    print(f"By name: {categories.get_by('name', 'Garden').to_dict()}")
    print(f"Sorted by position: {[row['name'] for row in categories.find_all().order('position')]}")
    print(f"Pairs: {categories.get_pairs()}")
    print(f"'Tools' taken by another row: {categories.row_exist('name', 'Tools', tools['id'])}")

    # 5. Typed partial update; unset fields are left alone
    print("5. Updating rows...")
    updated = categories.update(CategoryRecord(id=tools["id"], name="Hand Tools"))
    print(f"Updated: {updated.to_dict()}")

    try:
        categories.update({"id": 999, "name": "Nowhere"})
    except RowNotFoundError as e:
        print(f"Expected error: {e}")

    print(f"Deleted {categories.delete(garden['id'])} row(s)")
    database.dispose()


if __name__ == "__main__":
    main()
