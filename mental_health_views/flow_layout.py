from __future__ import annotations

from dataclasses import dataclass, replace
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Tuple

from .flow_graph import Condition, FlowGraph, FlowNodeKey, FlowStage
from .frequency import CGPA_BIN_LABELS, cgpa_bin_index

TextMeasure = Callable[[str], Tuple[float, float]]
Point = Tuple[float, float]


@dataclass(frozen=True)
class Margin:
    top: float
    right: float
    bottom: float
    left: float


@dataclass(frozen=True)
class Extent:
    width: float
    height: float


MARGIN = Margin(top=60, right=10, bottom=90, left=90)
NODE_WIDTH = 15.0
NODE_PADDING = 20.0
MIN_NODE_THICKNESS = 4.0
LABEL_OFFSET = 10.0
LABEL_PAD_X = 4.0
LABEL_PAD_Y = 2.0

CGPA_COLORS: Dict[str, str] = dict(zip(CGPA_BIN_LABELS, ("#96c1ff", "#7fa6ff", "#5f8cff", "#3f72ff", "#00429d")))
CONDITION_COLORS = {"No": "#c51b8a", "Yes": "#7a0177"}
TREATMENT_COLORS = {"Yes": "#2ca02c", "No": "#d62728"}
FALLBACK_COLOR = "#cccccc"

_STATUS_ORDER = ("No", "Yes")


@dataclass(frozen=True)
class LabelBox:
    text: str
    anchor: str  # "start", "middle" or "end"
    text_x: float
    text_y: float
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PositionedNode:
    key: FlowNodeKey
    rank: int
    order: int
    x0: float
    x1: float
    y0: float
    y1: float
    value: int
    color: str
    label: Optional[LabelBox] = None

    @property
    def name(self) -> str:
        return self.key.name

    @property
    def stage(self) -> FlowStage:
        return self.key.stage


@dataclass(frozen=True)
class PositionedLink:
    source: FlowNodeKey
    target: FlowNodeKey
    weight: int
    width: float
    x0: float
    y0: float
    x1: float
    y1: float
    color: str

    @property
    def stroke_width(self) -> float:
        return max(1.0, self.width)

    @property
    def path(self) -> Tuple[Point, Point, Point, Point]:
        """Cubic curve: start, two control points, end."""
        mid_x = (self.x0 + self.x1) / 2
        return (self.x0, self.y0), (mid_x, self.y0), (mid_x, self.y1), (self.x1, self.y1)


@dataclass(frozen=True)
class FlowLayout:
    condition: Condition
    extent: Extent
    nodes: Tuple[PositionedNode, ...]
    links: Tuple[PositionedLink, ...]

    def node(self, name: str) -> PositionedNode:
        for node in self.nodes:
            if node.name == name:
                return node
        raise KeyError(name)

    def rank(self, rank: int) -> List[PositionedNode]:
        return sorted((node for node in self.nodes if node.rank == rank), key=lambda node: node.order)


def estimate_text_size(text: str, font_size: float = 10.0) -> Tuple[float, float]:
    """Rough text extent for when no font metrics are available."""
    return len(text) * font_size * 0.6, font_size * 1.2


def node_color(key: FlowNodeKey) -> str:
    if key.stage is FlowStage.CGPA_BIN:
        return CGPA_COLORS.get(key.value, FALLBACK_COLOR)
    if key.stage is FlowStage.CONDITION:
        return CONDITION_COLORS.get(key.value, FALLBACK_COLOR)
    return TREATMENT_COLORS.get(key.value, FALLBACK_COLOR)


def _tier(key: FlowNodeKey, condition: Condition) -> int:
    if key.stage is FlowStage.CGPA_BIN:
        return 0
    if key.stage is FlowStage.CONDITION and key.category == condition.label:
        return 1
    if key.stage is FlowStage.TREATMENT:
        return 2
    return 3


def _position_in_tier(key: FlowNodeKey, tier: int) -> int:
    if tier == 0:
        return cgpa_bin_index(key.value)
    if key.value in _STATUS_ORDER:
        return _STATUS_ORDER.index(key.value)
    return len(_STATUS_ORDER)


def compare_flow_nodes(a: FlowNodeKey, b: FlowNodeKey, condition: Condition) -> int:
    """
    Order nodes within a rank.

    CGPA bins come first by ascending bin, then nodes of the active condition with
    "No" before "Yes", then treatment nodes with "No" before "Yes". Anything else
    compares equal so the sort keeps insertion order.
    """
    tier_a, tier_b = _tier(a, condition), _tier(b, condition)
    if tier_a != tier_b:
        return -1 if tier_a < tier_b else 1
    if tier_a == 3:
        return 0
    pos_a, pos_b = _position_in_tier(a, tier_a), _position_in_tier(b, tier_b)
    return (pos_a > pos_b) - (pos_a < pos_b)


def _label_box(node: PositionedNode, measure_text: TextMeasure) -> LabelBox:
    text = node.name
    width, height = measure_text(text)
    text_y = (node.y0 + node.y1) / 2
    if node.stage is FlowStage.CGPA_BIN:
        anchor, text_x = "end", node.x0 - LABEL_OFFSET
        left = text_x - width
    elif node.stage is FlowStage.TREATMENT:
        anchor, text_x = "start", node.x1 + LABEL_OFFSET
        left = text_x
    else:
        anchor, text_x = "middle", (node.x0 + node.x1) / 2
        left = text_x - width / 2
    return LabelBox(
        text=text,
        anchor=anchor,
        text_x=text_x,
        text_y=text_y,
        x=left - LABEL_PAD_X,
        y=text_y - height / 2 - LABEL_PAD_Y,
        width=width + 2 * LABEL_PAD_X,
        height=height + 2 * LABEL_PAD_Y,
    )


def layout_flow(
    graph: FlowGraph,
    extent: Extent,
    *,
    margin: Margin = MARGIN,
    measure_text: TextMeasure = estimate_text_size,
) -> FlowLayout:
    """
    Lay the flow graph out left to right inside `extent`.

    Nodes are placed first; link bands are then stacked inside their end nodes and
    a second pass measures each label to size its background box.
    """
    if not graph.nodes:
        return FlowLayout(condition=graph.condition, extent=extent, nodes=(), links=())

    inner_width = max(extent.width - margin.left - margin.right, NODE_WIDTH)
    inner_height = max(extent.height - margin.top - margin.bottom, 1.0)

    nx_graph = graph.to_networkx()
    values: Dict[FlowNodeKey, int] = {
        key: max(nx_graph.in_degree(key, weight="weight"), nx_graph.out_degree(key, weight="weight"))
        for key in graph.nodes
    }

    sort_key = cmp_to_key(lambda a, b: compare_flow_nodes(a, b, graph.condition))
    columns: Dict[int, List[FlowNodeKey]] = {}
    for key in graph.nodes:
        columns.setdefault(int(key.stage), []).append(key)
    for rank in columns:
        columns[rank] = sorted(columns[rank], key=sort_key)

    max_rank = max(int(stage) for stage in FlowStage)
    kx = (inner_width - NODE_WIDTH) / max_rank

    ky_candidates = []
    for keys in columns.values():
        total = sum(values[key] for key in keys)
        if total:
            ky_candidates.append((inner_height - (len(keys) - 1) * NODE_PADDING) / total)
    ky = max(min(ky_candidates, default=0.0), 0.0)

    placed: Dict[FlowNodeKey, PositionedNode] = {}
    for rank in sorted(columns):
        keys = columns[rank]
        thickness = [max(values[key] * ky, MIN_NODE_THICKNESS) for key in keys]
        leftover = inner_height - sum(thickness) - (len(keys) - 1) * NODE_PADDING
        gap = leftover / (len(keys) + 1) if leftover > 0 else 0.0
        x0 = margin.left + rank * kx
        y = margin.top + gap
        for order, (key, size) in enumerate(zip(keys, thickness)):
            placed[key] = PositionedNode(
                key=key,
                rank=rank,
                order=order,
                x0=x0,
                x1=x0 + NODE_WIDTH,
                y0=y,
                y1=y + size,
                value=values[key],
                color=node_color(key),
            )
            y += size + NODE_PADDING + gap

    # Stack link bands inside each node, ordered by the position of the far end.
    source_offset = {key: node.y0 for key, node in placed.items()}
    target_offset = dict(source_offset)
    by_target = sorted(graph.edges, key=lambda edge: (placed[edge.target].y0, placed[edge.source].y0))
    source_y: Dict[Tuple[FlowNodeKey, FlowNodeKey], float] = {}
    for edge in by_target:
        width = edge.weight * ky
        source_y[(edge.source, edge.target)] = source_offset[edge.source] + width / 2
        source_offset[edge.source] += width
    by_source = sorted(graph.edges, key=lambda edge: (placed[edge.source].y0, placed[edge.target].y0))
    target_y: Dict[Tuple[FlowNodeKey, FlowNodeKey], float] = {}
    for edge in by_source:
        width = edge.weight * ky
        target_y[(edge.source, edge.target)] = target_offset[edge.target] + width / 2
        target_offset[edge.target] += width

    links = tuple(
        PositionedLink(
            source=edge.source,
            target=edge.target,
            weight=edge.weight,
            width=edge.weight * ky,
            x0=placed[edge.source].x1,
            y0=source_y[(edge.source, edge.target)],
            x1=placed[edge.target].x0,
            y1=target_y[(edge.source, edge.target)],
            color=placed[edge.source].color,
        )
        for edge in graph.edges
    )

    nodes = []
    for rank in sorted(columns):
        for key in columns[rank]:
            node = placed[key]
            nodes.append(replace(node, label=_label_box(node, measure_text)))

    return FlowLayout(condition=graph.condition, extent=extent, nodes=tuple(nodes), links=links)
