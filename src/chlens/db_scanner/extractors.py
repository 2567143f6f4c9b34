"""
Extraction of table references from ClickHouse DDL text.

Every rule is a plain function taking the DDL text and the database of the
object being inspected, and returning a list of Dependency records. Rules
never raise: text that doesn't match simply yields an empty list.
"""
from typing import List, Optional, Set, Tuple
import re

from .models import Dependency, EdgeType, NodeType, TableRow
from .sanitizer import sanitize, strip_comments

# Bare or backtick-quoted identifier
_NAME = r"(?:`(?:[^`]|``)+`|[A-Za-z_][A-Za-z0-9_$]*)"
# [db.]table, the bare table name must not be a prefix of a longer word
# and must not be followed by "(" (table functions like numbers(10)) or
# by "." (the database part of a qualified table function)
_QUALIFIED = (
    rf"(?:(?P<db>{_NAME})\s*\.\s*)?(?P<table>{_NAME})"
    r"(?![A-Za-z0-9_$])(?!\s*[.(])"
)

# A materialized view target may be followed by its column list
_TARGET_RE = re.compile(
    rf"\bTO\s+(?!(?:DISK|VOLUME)\b)"
    rf"(?:(?P<db>{_NAME})\s*\.\s*)?(?P<table>{_NAME})"
    r"(?![A-Za-z0-9_$])(?!\s*\.)",
    re.IGNORECASE,
)

_JOIN_KINDS = "LEFT|RIGHT|INNER|OUTER|CROSS|FULL|SEMI|ANTI|ANY|ALL|ASOF|GLOBAL|PASTE|ARRAY"
_JOIN_RE = re.compile(
    rf"\b(?P<kinds>(?:(?:{_JOIN_KINDS})\s+)*)JOIN\s+{_QUALIFIED}",
    re.IGNORECASE,
)

_FROM_RE = re.compile(rf"\bFROM\s+{_QUALIFIED}", re.IGNORECASE)
_SELECT_RE = re.compile(r"\bSELECT\b", re.IGNORECASE)

_ARG = r"""(?:'(?:\\.|''|[^'\\])*'|"(?:\\.|""|[^"\\])*"|`(?:[^`]|``)+`|[A-Za-z0-9_$.{}-]+)"""
_DISTRIBUTED_RE = re.compile(
    rf"""\bDistributed\s*\(\s*
        (?P<cluster>{_ARG})\s*,\s*
        (?P<db>currentDatabase\s*\(\s*\)|{_ARG})\s*,\s*
        (?P<table>{_ARG})""",
    re.IGNORECASE | re.VERBOSE,
)

_DICTIONARY_RE = re.compile(
    r"\b(?P<func>dict(?:Get|Has)[A-Za-z0-9_]*)\s*\(\s*'(?P<name>(?:\\.|''|[^'\\])+)'",
    re.IGNORECASE,
)


def unquote(identifier: Optional[str]) -> str:
    """Strip ClickHouse identifier or literal quoting."""
    if not identifier:
        return ""
    value = identifier.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "`'\"":
        quote = value[0]
        value = value[1:-1].replace(quote * 2, quote).replace("\\" + quote, quote)
    return value


def _qualified(match: "re.Match", default_database: str) -> Tuple[str, str]:
    database = unquote(match.group("db")) or default_database
    return database, unquote(match.group("table"))


def _unique(dependencies: List[Dependency]) -> List[Dependency]:
    seen: Set[Tuple[str, str]] = set()
    result = []
    for dep in dependencies:
        key = (dep.database, dep.table)
        if key not in seen and dep.table:
            seen.add(key)
            result.append(dep)
    return result


def extract_target_table(sql: str, default_database: str) -> List[Dependency]:
    """Target table of a materialized view (``TO [db.]table``)."""
    match = _TARGET_RE.search(sql or "")
    if not match:
        return []
    database, table = _qualified(match, default_database)
    return [Dependency(database, table, EdgeType.TARGET)]


def extract_join_tables(sql: str, default_database: str) -> List[Dependency]:
    """Every table referenced by a JOIN, one entry per (database, table)."""
    dependencies = []
    for match in _JOIN_RE.finditer(sql or ""):
        # ARRAY JOIN unfolds a column, not a table
        if "ARRAY" in match.group("kinds").upper():
            continue
        database, table = _qualified(match, default_database)
        dependencies.append(Dependency(database, table, EdgeType.JOIN))
    return _unique(dependencies)


def _belongs_to_select(sql: str, pos: int) -> bool:
    """Whether the FROM at ``pos`` is a SELECT clause.

    EXTRACT(YEAR FROM ts) and trim(BOTH ' ' FROM s) use FROM inside a
    function call: no SELECT precedes it within the innermost open paren.
    """
    opened = []
    for index, char in enumerate(sql[:pos]):
        if char == "(":
            opened.append(index)
        elif char == ")" and opened:
            opened.pop()
    start = opened[-1] + 1 if opened else 0
    return _SELECT_RE.search(sql, start, pos) is not None


def extract_source_tables(sql: str, default_database: str) -> List[Dependency]:
    """Tables read in FROM clauses of a view's SELECT."""
    sql = sql or ""
    dependencies = []
    for match in _FROM_RE.finditer(sql):
        if not _belongs_to_select(sql, match.start()):
            continue
        database, table = _qualified(match, default_database)
        dependencies.append(Dependency(database, table, EdgeType.SOURCE))
    return _unique(dependencies)


def extract_distributed_table(sql: str, default_database: str) -> List[Dependency]:
    """Local table behind a Distributed engine definition.

    Expects comment-free text with string literals intact, since the
    engine arguments are usually quoted.
    """
    match = _DISTRIBUTED_RE.search(sql or "")
    if not match:
        return []
    raw_database = match.group("db")
    if re.match(r"currentDatabase\s*\(", raw_database, re.IGNORECASE):
        database = default_database
    else:
        database = unquote(raw_database) or default_database
    table = unquote(match.group("table"))
    if not table:
        return []
    return [Dependency(database, table, EdgeType.DISTRIBUTED)]


def extract_dictionary_refs(sql: str, default_database: str) -> List[Dependency]:
    """Dictionaries read through dictGet*/dictHas* calls.

    Runs on the original DDL: the dictionary name is the string literal
    argument that sanitizing would erase.
    """
    dependencies = []
    for match in _DICTIONARY_RE.finditer(sql or ""):
        name = unquote("'" + match.group("name") + "'")
        if "." in name:
            database, dictionary = name.split(".", 1)
        else:
            database, dictionary = default_database, name
        database, dictionary = unquote(database), unquote(dictionary)
        dependencies.append(
            Dependency(database or default_database, dictionary, EdgeType.DICTIONARY)
        )
    return _unique(dependencies)


def extract_dependencies(row: TableRow) -> List[Dependency]:
    """Run the extraction rules that apply to a catalog row."""
    ddl = row.create_table_query or ""
    if not ddl.strip():
        return []

    clean = sanitize(ddl)
    node_type = row.node_type
    dependencies: List[Dependency] = []

    if node_type == NodeType.MATERIALIZED_VIEW:
        dependencies.extend(extract_target_table(clean, row.database))
    if node_type in (NodeType.VIEW, NodeType.MATERIALIZED_VIEW):
        dependencies.extend(extract_source_tables(clean, row.database))
    dependencies.extend(extract_join_tables(clean, row.database))
    if row.engine.lower().startswith("distributed"):
        dependencies.extend(extract_distributed_table(strip_comments(ddl), row.database))
    dependencies.extend(extract_dictionary_refs(ddl, row.database))
    return dependencies
