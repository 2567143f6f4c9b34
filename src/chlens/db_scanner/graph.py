"""Table dependency graph assembly."""
from itertools import count
from typing import Any, Dict, Iterable, List, Optional
import networkx as nx

from .catalog import ExistenceValidator, structural_dependencies
from .extractors import extract_dependencies
from .models import (
    UNKNOWN_ENGINE, Dependency, Edge, Node, NodeType, TableRow,
)
from ..logging_config import get_logger

logger = get_logger(__name__)


class DependencyGraph:
    """Nodes and typed edges of one database's dependency graph."""

    def __init__(self, graph: Optional[nx.MultiDiGraph] = None):
        self.graph = graph if graph is not None else nx.MultiDiGraph()

    def nodes(self) -> List[Node]:
        return [data["node"] for _, data in self.graph.nodes(data=True)]

    def edges(self) -> List[Edge]:
        edges = self.graph.edges(keys=True, data=True)
        ordered = sorted(edges, key=lambda item: item[3]["seq"])
        return [data["edge"] for _, _, _, data in ordered]

    def connected_only(self) -> "DependencyGraph":
        """Drop nodes that take part in no edge."""
        nodes = [node for node in self.graph if self.graph.degree(node) > 0]
        return self._subgraph(set(nodes))

    def neighborhood(self, node_id: str, depth: int = 1) -> "DependencyGraph":
        """Sub-graph within ``depth`` hops of a node, in either direction."""
        if node_id not in self.graph:
            return DependencyGraph()

        nodes = {node_id}
        current_depth = 0

        while current_depth < depth:
            new_nodes = set()
            for node in nodes:
                new_nodes.update(self.graph.predecessors(node))
                new_nodes.update(self.graph.successors(node))
            if new_nodes <= nodes:
                break
            nodes.update(new_nodes)
            current_depth += 1

        return self._subgraph(set(nodes))

    def _subgraph(self, keep) -> "DependencyGraph":
        # keeps the original node order, unlike nx subgraph views
        sub = nx.MultiDiGraph()
        sub.add_nodes_from(
            (node, data) for node, data in self.graph.nodes(data=True) if node in keep
        )
        sub.add_edges_from(
            (u, v, key, data)
            for u, v, key, data in self.graph.edges(keys=True, data=True)
            if u in keep and v in keep
        )
        return DependencyGraph(sub)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "nodes": [node.to_dict() for node in self.nodes()],
            "edges": [edge.to_dict() for edge in self.edges()],
        }


class DependencyGraphBuilder:
    """Builds a dependency graph from system.tables rows.

    Rows of the queried database always become nodes. Objects reached only
    through a dependency are added when the existence validator knows them,
    otherwise the reference is dropped together with its edge.
    """

    def __init__(self, validator: Optional[ExistenceValidator] = None):
        self.validator = validator if validator is not None else ExistenceValidator()
        self.graph = nx.MultiDiGraph()
        self._seq = count()

    def build_graph(self, rows: Iterable[TableRow]) -> DependencyGraph:
        """Build graph from catalog rows."""
        self.graph = nx.MultiDiGraph()
        self._seq = count()
        rows = list(rows)

        for row in rows:
            self.add_row(row)

        for row in rows:
            for dep in structural_dependencies(row):
                self.add_dependency(row, dep)
            for dep in extract_dependencies(row):
                self.add_dependency(row, dep)

        logger.debug(
            "Built dependency graph: %d nodes, %d edges",
            self.graph.number_of_nodes(), self.graph.number_of_edges(),
        )
        return DependencyGraph(self.graph)

    def add_row(self, row: TableRow):
        """Adds a queried table to the graph"""
        if not self.graph.has_node(row.id):
            self.graph.add_node(row.id, node=Node.from_row(row))

    def add_dependency(self, row: TableRow, dep: Dependency) -> Optional[Edge]:
        """Adds the edge for one dependency of a row, if its node can exist."""
        if not self._ensure_node(dep):
            logger.debug("Skipping %s reference from %s to unknown table %s",
                         dep.edge_type.value, row.id, dep.id)
            return None

        if dep.edge_type.reversed:
            source, target = row.id, dep.id
        else:
            source, target = dep.id, row.id

        key = dep.edge_type.value
        if self.graph.has_edge(source, target, key=key):
            return None

        edge = Edge(source=source, target=target, type=dep.edge_type,
                    label=dep.edge_type.label)
        self.graph.add_edge(source, target, key=key, edge=edge, seq=next(self._seq))
        return edge

    def _ensure_node(self, dep: Dependency) -> bool:
        if self.graph.has_node(dep.id):
            return True

        engine = self.validator.exists(dep.database, dep.table)
        if engine is None:
            return False

        self.graph.add_node(dep.id, node=Node(
            database=dep.database,
            name=dep.table,
            engine=engine or UNKNOWN_ENGINE,
            type=NodeType.from_engine(engine),
        ))
        return True


def build_dependency_graph(rows: Iterable[TableRow],
                           validator: Optional[ExistenceValidator] = None) -> DependencyGraph:
    return DependencyGraphBuilder(validator).build_graph(rows)
