"""Source collectors: where flows and function nodes come from.

A collector hands the scan pass everything it needs in one synchronous
call, so the pass never walks the host's node graph itself.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Protocol, Union

from ..exceptions import CollectorError


@dataclass(frozen=True)
class FlowSource:
    flow_id: str
    flow_name: str


@dataclass(frozen=True)
class UnitSource:
    flow_id: str
    unit_id: str
    unit_name: str
    source: str


@dataclass
class SourceSnapshot:
    """Flows and units enumerated for a single scan pass."""

    flows: list[FlowSource] = field(default_factory=list)
    units: list[UnitSource] = field(default_factory=list)

    def units_by_flow(self) -> dict[str, list[UnitSource]]:
        """Units grouped under known flows; units of unknown flows are dropped."""
        grouped: dict[str, list[UnitSource]] = {f.flow_id: [] for f in self.flows}
        for unit in self.units:
            if unit.flow_id in grouped:
                grouped[unit.flow_id].append(unit)
        return grouped


class SourceCollector(Protocol):
    def is_ready(self) -> bool:
        """Whether ``collect`` can be expected to succeed now."""
        ...

    def collect(self) -> SourceSnapshot:
        """Enumerate flows and units.

        Raises:
            CollectorError: when enumeration fails part-way
        """
        ...


class StaticCollector:
    """In-memory collector."""

    def __init__(self, flows: Iterable[FlowSource] = (), units: Iterable[UnitSource] = ()) -> None:
        self.flows = list(flows)
        self.units = list(units)

    def is_ready(self) -> bool:
        return True

    def collect(self) -> SourceSnapshot:
        return SourceSnapshot(flows=list(self.flows), units=list(self.units))


class FlowsFileCollector:
    """Reads a Node-RED ``flows.json`` export.

    ``tab`` nodes become flows and ``function`` nodes with a body and a
    parent tab become units.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def is_ready(self) -> bool:
        return self.path.is_file()

    def collect(self) -> SourceSnapshot:
        try:
            nodes = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CollectorError(str(self.path), str(e)) from e

        if isinstance(nodes, dict):
            # Node-RED's versioned format: {"rev": ..., "flows": [...]}
            nodes = nodes.get("flows")
        if not isinstance(nodes, list):
            raise CollectorError(str(self.path), "expected a list of nodes")

        return snapshot_from_nodes(nodes)


def snapshot_from_nodes(nodes: Iterable[Any]) -> SourceSnapshot:
    """Build a snapshot from Node-RED node configs."""
    snapshot = SourceSnapshot()
    for node in nodes:
        if not isinstance(node, dict) or "id" not in node:
            continue
        node_id = str(node["id"])
        node_type = node.get("type")

        if node_type == "tab":
            name = node.get("label") or node.get("name") or f"Flow {node_id[:8]}"
            snapshot.flows.append(FlowSource(flow_id=node_id, flow_name=name))
        elif node_type == "function" and node.get("func") and node.get("z"):
            snapshot.units.append(
                UnitSource(
                    flow_id=str(node["z"]),
                    unit_id=node_id,
                    unit_name=node.get("name") or f"Function Node {node_id[:8]}",
                    source=str(node["func"]),
                )
            )
    return snapshot
