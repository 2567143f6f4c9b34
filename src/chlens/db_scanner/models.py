"""Table dependency graph models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum


UNKNOWN_ENGINE = "Unknown"


class NodeType(Enum):
    """Types of catalog objects shown in the graph."""
    TABLE = "table"
    VIEW = "view"
    MATERIALIZED_VIEW = "materialized_view"
    DISTRIBUTED = "distributed"
    DICTIONARY = "dictionary"

    @classmethod
    def from_engine(cls, engine: Optional[str]) -> "NodeType":
        """Classify an object by the leading token of its engine string."""
        engine_lower = (engine or "").strip().lower()
        if engine_lower.startswith("materializedview"):
            return cls.MATERIALIZED_VIEW
        if engine_lower == "view" or engine_lower.startswith("view("):
            return cls.VIEW
        if engine_lower.startswith("distributed"):
            return cls.DISTRIBUTED
        if engine_lower.startswith("dictionary"):
            return cls.DICTIONARY
        return cls.TABLE


class EdgeType(Enum):
    """Types of dependency edges."""
    SOURCE = "source"
    TARGET = "target"
    JOIN = "join"
    DISTRIBUTED = "distributed"
    DICTIONARY = "dictionary"

    @property
    def reversed(self) -> bool:
        # the dependent object writes to / aliases the referenced one
        return self in (EdgeType.TARGET, EdgeType.DISTRIBUTED)

    @property
    def label(self) -> Optional[str]:
        return EDGE_LABELS.get(self)


EDGE_LABELS = {
    EdgeType.TARGET: "TO",
    EdgeType.JOIN: "JOIN",
    EdgeType.DISTRIBUTED: "Distributed",
    EdgeType.DICTIONARY: "dictGet",
}


def node_id(database: str, name: str) -> str:
    return f"{database}.{name}"


@dataclass
class TableRow:
    """One row of system.tables."""
    database: str
    name: str
    engine: str
    total_rows: Optional[int] = None
    total_bytes: Optional[int] = None
    dependencies_database: List[str] = field(default_factory=list)
    dependencies_table: List[str] = field(default_factory=list)
    create_table_query: str = ""

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TableRow":
        """Build a row from a catalog record, tolerating missing columns."""
        return cls(
            database=record.get("database") or "",
            name=record.get("name") or "",
            engine=record.get("engine") or "",
            total_rows=_optional_int(record.get("total_rows")),
            total_bytes=_optional_int(record.get("total_bytes")),
            dependencies_database=list(record.get("dependencies_database") or []),
            dependencies_table=list(record.get("dependencies_table") or []),
            create_table_query=record.get("create_table_query") or "",
        )

    @property
    def id(self) -> str:
        return node_id(self.database, self.name)

    @property
    def node_type(self) -> NodeType:
        return NodeType.from_engine(self.engine)


@dataclass(frozen=True)
class Dependency:
    """A reference from a table row to another catalog object."""
    database: str
    table: str
    edge_type: EdgeType

    @property
    def id(self) -> str:
        return node_id(self.database, self.table)


@dataclass
class Node:
    """Graph vertex."""
    database: str
    name: str
    engine: str
    type: NodeType
    total_rows: Optional[int] = None
    total_bytes: Optional[int] = None

    @property
    def id(self) -> str:
        return node_id(self.database, self.name)

    @classmethod
    def from_row(cls, row: TableRow) -> "Node":
        return cls(
            database=row.database,
            name=row.name,
            engine=row.engine,
            type=row.node_type,
            total_rows=row.total_rows,
            total_bytes=row.total_bytes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "database": self.database,
            "name": self.name,
            "engine": self.engine,
            "type": self.type.value,
            "totalRows": self.total_rows,
            "totalBytes": self.total_bytes,
        }


@dataclass
class Edge:
    """Graph arc; identity is source, target and type."""
    source: str
    target: str
    type: EdgeType
    label: Optional[str] = None

    @property
    def id(self) -> str:
        return f"{self.source}->{self.target}:{self.type.value}"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type.value,
        }
        if self.label:
            data["label"] = self.label
        return data


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
