from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple, Union

import networkx as nx

from .frequency import cgpa_bin
from .records import Record


class UnknownConditionError(ValueError):
    """Raised when a condition name is not one of the surveyed conditions."""


class Condition(enum.Enum):
    DEPRESSION = "Depression"
    ANXIETY = "Anxiety"
    PANIC_ATTACK = "Panic attack"

    @property
    def label(self) -> str:
        return self.value

    @property
    def column(self) -> str:
        return f"Do you have {self.value}?"

    def applies_to(self, record: Record) -> bool:
        if self is Condition.DEPRESSION:
            return record.depression
        if self is Condition.ANXIETY:
            return record.anxiety
        return record.panic_attack

    @classmethod
    def parse(cls, value: Union["Condition", str]) -> "Condition":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for condition in cls:
                if wanted in (condition.value.lower(), condition.name.lower()):
                    return condition
        raise UnknownConditionError(f"Unknown condition: {value!r}")


class FlowStage(enum.IntEnum):
    """Flow diagram stages; the value is the layout rank."""

    CGPA_BIN = 0
    CONDITION = 1
    TREATMENT = 2


TREATMENT_CATEGORY = "Treatment"
CGPA_CATEGORY = "CGPA"


@dataclass(frozen=True)
class FlowNodeKey:
    stage: FlowStage
    category: str
    value: str

    @property
    def name(self) -> str:
        if self.stage is FlowStage.CGPA_BIN:
            return self.value
        return f"{self.category} {self.value}"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class FlowEdge:
    source: FlowNodeKey
    target: FlowNodeKey
    weight: int


@dataclass(frozen=True)
class FlowGraph:
    condition: Condition
    nodes: Tuple[FlowNodeKey, ...] = ()
    edges: Tuple[FlowEdge, ...] = ()
    _index: Dict[Tuple[FlowNodeKey, FlowNodeKey], int] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._index.update({(edge.source, edge.target): edge.weight for edge in self.edges})

    def weight(self, source: FlowNodeKey, target: FlowNodeKey) -> int:
        return self._index.get((source, target), 0)

    def node(self, name: str) -> FlowNodeKey:
        for key in self.nodes:
            if key.name == name:
                return key
        raise KeyError(name)

    def to_networkx(self) -> nx.DiGraph:
        graph = nx.DiGraph()
        for key in self.nodes:
            graph.add_node(key, stage=key.stage, name=key.name)
        for edge in self.edges:
            graph.add_edge(edge.source, edge.target, weight=edge.weight)
        return graph


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def cgpa_node(label: str) -> FlowNodeKey:
    return FlowNodeKey(FlowStage.CGPA_BIN, CGPA_CATEGORY, label)


def condition_node(condition: Condition, flag: bool) -> FlowNodeKey:
    return FlowNodeKey(FlowStage.CONDITION, condition.label, _yes_no(flag))


def treatment_node(flag: bool) -> FlowNodeKey:
    return FlowNodeKey(FlowStage.TREATMENT, TREATMENT_CATEGORY, _yes_no(flag))


def build_flow_graph(records: Iterable[Record], condition: Union[Condition, str]) -> FlowGraph:
    """
    Build the CGPA bin -> condition status -> treatment status graph.

    Nodes and edges keep the order in which they are first seen. A record without a
    numeric CGPA adds no CGPA edge but still adds its condition -> treatment edge.
    """
    active = Condition.parse(condition)
    registry: Dict[FlowNodeKey, None] = {}
    weights: Dict[Tuple[FlowNodeKey, FlowNodeKey], int] = {}

    def add_edge(source: FlowNodeKey, target: FlowNodeKey) -> None:
        registry.setdefault(source, None)
        registry.setdefault(target, None)
        weights[(source, target)] = weights.get((source, target), 0) + 1

    for record in records:
        status = condition_node(active, active.applies_to(record))
        label = cgpa_bin(record.cgpa)
        if label is not None:
            add_edge(cgpa_node(label), status)
        add_edge(status, treatment_node(record.sought_treatment))

    edges: List[FlowEdge] = [FlowEdge(source, target, weight) for (source, target), weight in weights.items()]
    return FlowGraph(condition=active, nodes=tuple(registry), edges=tuple(edges))
