"""
Export registry backed by a reference graph.

Uses networkx as the single source of truth for which names a package
exports and which types each export refers to. Rules and drift checks
query it to find forgotten exports, broken links and stale examples.
"""
from typing import Optional

import networkx as nx

from doccov.constants import CALLABLE_KINDS, TYPE_LIKE_KINDS
from doccov.matcher import find_closest_match
from doccov.models import ExportSymbol, PackageSpec, TypeDefinition


# Node ID delimiter - pipe never appears in export ids
_ID_DELIM = "|"


def _export_node_id(export_id: str) -> str:
    return f"export{_ID_DELIM}{export_id}"


def _type_node_id(type_id: str) -> str:
    return f"type{_ID_DELIM}{type_id}"


class ExportRegistry:
    """
    Directed graph of a package's exports and named types.

    Node types (identified by 'kind' attribute):
    - 'export': An exported symbol
    - 'type': An entry in the spec's type table, or an unresolved type id

    Edge types (identified by 'relation' attribute):
    - 'references': Export signature/member/schema mentions a type
    - 'extends': Export extends or implements a named type
    """

    def __init__(self):
        self._graph = nx.DiGraph()
        self._export_keys: dict[str, str] = {}   # id or name -> node
        self._type_keys: dict[str, str] = {}

    @classmethod
    def from_spec(cls, spec: PackageSpec) -> "ExportRegistry":
        """Build the registry for every export and type in a spec."""
        registry = cls()
        for type_def in spec.types:
            registry.add_type(type_def)
        for export in spec.exports:
            registry.add_export(export)
        return registry

    # --- Node management ---

    def add_type(self, type_def: TypeDefinition) -> str:
        """Add a type table entry. Returns node ID."""
        node = _type_node_id(type_def.id)
        self._graph.add_node(node, kind="type", name=type_def.name, resolved=True)
        self._type_keys[type_def.id] = node
        self._type_keys[type_def.name] = node
        return node

    def add_export(self, export: ExportSymbol) -> str:
        """Add an export and its outgoing type references. Returns node ID."""
        node = _export_node_id(export.id)
        self._graph.add_node(
            node,
            kind="export",
            name=export.name,
            export_kind=export.kind.value,
        )
        self._export_keys[export.id] = node
        self._export_keys[export.name] = node

        for type_id in export.referenced_type_ids():
            self._graph.add_edge(node, self._type_node(type_id), relation="references")
        for base in [export.extends, *export.implements]:
            if base:
                self._graph.add_edge(node, self._type_node(base), relation="extends")
        return node

    def _type_node(self, type_id: str) -> str:
        """Node for a type id, creating an unresolved placeholder if needed."""
        if type_id in self._type_keys:
            return self._type_keys[type_id]
        node = _type_node_id(type_id)
        if node not in self._graph:
            self._graph.add_node(node, kind="type", name=type_id, resolved=False)
        return node

    # --- Queries ---

    def __contains__(self, name: str) -> bool:
        """True if name is an exported symbol or a known type."""
        return name in self._export_keys or name in self._type_keys

    def is_exported(self, name: str) -> bool:
        return name in self._export_keys

    @property
    def known_names(self) -> list[str]:
        """Every export and type id or name, sorted."""
        return sorted(set(self._export_keys) | set(self._type_keys))

    @property
    def export_names(self) -> list[str]:
        """Declaration names of all exports, sorted."""
        return sorted(
            data["name"] for _, data in self._graph.nodes(data=True)
            if data.get("kind") == "export"
        )

    @property
    def type_names(self) -> list[str]:
        return sorted(
            data["name"] for _, data in self._graph.nodes(data=True)
            if data.get("kind") == "type" and data.get("resolved")
        )

    def names_for_context(self, context: str) -> list[str]:
        """
        Candidate names for a suggestion, by how the name was used.

        'call' suggests callable exports, 'type' suggests type-like exports
        and type table names, anything else suggests all export names.
        """
        exports = [
            data for _, data in self._graph.nodes(data=True)
            if data.get("kind") == "export"
        ]
        if context == "call":
            return sorted(d["name"] for d in exports if d["export_kind"] in CALLABLE_KINDS)
        if context == "type":
            names = {d["name"] for d in exports if d["export_kind"] in TYPE_LIKE_KINDS}
            return sorted(names | set(self.type_names))
        return self.export_names

    def find_close_match(self, name: str, context: str = "value") -> Optional[str]:
        """Closest known name to a missing one, or None."""
        return find_closest_match(name, self.names_for_context(context))

    def dependents(self, type_name: str) -> list[str]:
        """Names of exports that reference the given type."""
        node = self._type_keys.get(type_name, _type_node_id(type_name))
        if node not in self._graph:
            return []
        return sorted(
            self._graph.nodes[source]["name"]
            for source in self._graph.predecessors(node)
            if self._graph.nodes[source].get("kind") == "export"
        )

    def forgotten_references(self, export: ExportSymbol) -> list[str]:
        """
        Types an export's public surface mentions that are not exported.

        Schema references must resolve to an exported name. extends and
        implements targets only count when they are known types, since
        they commonly name platform classes such as Error.
        """
        forgotten: dict[str, None] = {}
        for type_id in export.referenced_type_ids():
            if not self.is_exported(type_id) and type_id != export.id:
                forgotten.setdefault(type_id, None)
        for base in [export.extends, *export.implements]:
            if base and base in self._type_keys and not self.is_exported(base):
                forgotten.setdefault(base, None)
        return list(forgotten)
