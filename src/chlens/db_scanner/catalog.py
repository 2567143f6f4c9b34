"""
Catalog access for the dependency graph: system.tables reads, the
engine-tracked dependency columns and the existence lookup.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import Dependency, EdgeType, TableRow
from ..logging_config import get_logger

logger = get_logger(__name__)

TABLES_QUERY = """
    SELECT
        database,
        name,
        engine,
        total_rows,
        total_bytes,
        dependencies_database,
        dependencies_table,
        create_table_query
    FROM system.tables
    WHERE database = '{database}'
"""

ALL_TABLES_QUERY = """
    SELECT
        database,
        name,
        engine
    FROM system.tables
"""


DDL_QUERY = """
    SELECT
        database,
        name,
        engine,
        create_table_query
    FROM system.tables
    WHERE database = '{database}' AND name = '{table}'
"""


def quote_literal(value: str) -> str:
    """Escape a value for use inside a single-quoted SQL literal."""
    return value.replace("\\", "\\\\").replace("'", "''")


def tables_query(database: str) -> str:
    return TABLES_QUERY.format(database=quote_literal(database))


def ddl_query(database: str, table: str) -> str:
    return DDL_QUERY.format(database=quote_literal(database), table=quote_literal(table))


def structural_dependencies(row: TableRow) -> List[Dependency]:
    """Dependencies the server tracks itself (dependencies_* columns).

    Index i of dependencies_database and dependencies_table form one pair.
    A blank database entry means the row's own database.
    """
    dependencies = []
    for dep_database, dep_table in zip(row.dependencies_database, row.dependencies_table):
        if not dep_table:
            continue
        dependencies.append(
            Dependency(dep_database or row.database, dep_table, EdgeType.SOURCE)
        )
    return dependencies


class ExistenceValidator:
    """Lookup of every table known to the server, across all databases."""

    def __init__(self, records: Iterable[Dict[str, Any]] = ()):
        self._engines: Dict[Tuple[str, str], str] = {}
        for record in records:
            self.add(record.get("database") or "", record.get("name") or "",
                     record.get("engine") or "")

    def add(self, database: str, table: str, engine: str):
        self._engines[(database, table)] = engine

    def exists(self, database: str, table: str) -> Optional[str]:
        """Return the engine of an existing table, or None."""
        return self._engines.get((database, table))

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._engines

    def __len__(self) -> int:
        return len(self._engines)


class CatalogReader:
    """Reads the two catalog snapshots the graph is built from."""

    def __init__(self, client):
        """Initialize reader with a query client exposing query(sql).data."""
        self.client = client

    def read_tables(self, database: str) -> List[TableRow]:
        result = self.client.query(tables_query(database))
        return [TableRow.from_record(record) for record in result.data]

    def read_validator(self) -> ExistenceValidator:
        result = self.client.query(ALL_TABLES_QUERY)
        return ExistenceValidator(result.data)

    def read_ddl(self, database: str, table: str) -> Optional[TableRow]:
        result = self.client.query(ddl_query(database, table))
        if not result.data:
            return None
        return TableRow.from_record(result.data[0])

    def read(self, database: str) -> Tuple[List[TableRow], ExistenceValidator]:
        rows = self.read_tables(database)
        validator = self.read_validator()
        logger.debug(
            "Read %d tables from %s, %d tables known server-wide",
            len(rows), database, len(validator),
        )
        return rows, validator
