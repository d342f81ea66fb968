"""
Naming conventions shared by table gateways.

Gateway classes map to tables by name: ``UserLoginLog`` reads and writes the
``user_login_log`` table. The derivation inserts a separator before every
capital letter, so runs of capitals are split letter by letter
(``VATRate`` -> ``v_a_t_rate``). Existing schemas depend on that behaviour.
"""

import re

_UPPERCASE = re.compile(r"[A-Z]")

COLUMNS_CACHE_SUFFIX = "get_table_columns"


def derive_table_name(type_name: str) -> str:
    """Derive a table name from a class name.

    Args:
        type_name: Simple or dotted class name; only the last segment is used

    Returns:
        Lower-case, underscore-separated table name
    """
    name = type_name.rsplit(".", 1)[-1]
    if not name:
        return name
    name = name[0].lower() + name[1:]
    name = _UPPERCASE.sub(lambda m: "_" + m.group(0), name)
    return name.lower()


def columns_cache_key(qualified_name: str) -> str:
    """Build the metadata cache key for a gateway's column set.

    Args:
        qualified_name: ``module.QualName`` of the gateway class

    Returns:
        Cache-safe key, e.g. ``app-tables-UserTable-get_table_columns``
    """
    return f"{qualified_name.replace('.', '-')}-{COLUMNS_CACHE_SUFFIX}"
