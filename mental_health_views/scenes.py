from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .flow_graph import FlowStage
from .flow_layout import MARGIN, Extent, FlowLayout, Point
from .frequency import CGPA_BIN_LABELS, FrequencyCell, grid_matrix
from .records import YEARS_OF_STUDY
from .regions import RegionCode, region_label, region_members, region_title
from .selection import SelectionState

BACKGROUND = "#f0f0f0"
EMPTY_CELL = "#e0e0e0"
SELECTED_TEXT = "#ffd700"

# d3 "Blues" sequential scheme.
BLUES = ("#f7fbff", "#deebf7", "#c6dbef", "#9ecae1", "#6baed6", "#4292c6", "#2171b5", "#08519c", "#08306b")

REGION_CIRCLES = (
    ("Depression", "#ff0000"),
    ("Anxiety", "#008000"),
    ("Panic Attack", "#0000ff"),
)

GRID_MARGIN = {"top": 40, "right": 90, "bottom": 60, "left": 110}


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str
    stroke: Optional[str] = None
    opacity: float = 1.0
    tooltip: Optional[str] = None


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    r: float
    fill: str
    fill_opacity: float = 0.5
    stroke: str = "#999999"
    stroke_width: float = 2.0
    tooltip: Optional[str] = None


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    size: float = 12.0
    color: str = "#000000"
    anchor: str = "middle"
    bold: bool = False
    rotation: float = 0.0
    tooltip: Optional[str] = None
    region: Optional[RegionCode] = None


@dataclass(frozen=True)
class Path:
    points: Tuple[Point, Point, Point, Point]
    stroke: str
    stroke_width: float
    opacity: float = 1.0
    tooltip: Optional[str] = None


@dataclass(frozen=True)
class HitTarget:
    """Invisible clickable area that selects `region`."""

    x: float
    y: float
    width: float
    height: float
    region: RegionCode
    tooltip: Optional[str] = None


Shape = Union[Rect, Circle, Text, Path, HitTarget]


@dataclass(frozen=True)
class Scene:
    title: str
    width: float
    height: float
    shapes: Tuple[Shape, ...] = ()
    background: str = BACKGROUND

    @property
    def is_empty(self) -> bool:
        return not self.shapes

    def of_type(self, kind: type) -> List[Shape]:
        return [shape for shape in self.shapes if isinstance(shape, kind)]


@dataclass(frozen=True)
class GridScene(Scene):
    """Heat map scene; `levels` is the count range of the colour scale."""

    levels: Tuple[int, int] = (0, 1)


def placeholder_scene(title: str, extent: Extent, message: str) -> Scene:
    return Scene(
        title=title,
        width=extent.width,
        height=extent.height,
        shapes=(Text(extent.width / 2, extent.height / 2, message, size=13, color="#6e7392"),),
    )


def hex_to_rgb(colour: str) -> Tuple[int, int, int]:
    colour = colour.lstrip("#")
    return int(colour[0:2], 16), int(colour[2:4], 16), int(colour[4:6], 16)


def sequential_blue(ratio: float) -> str:
    ratio = float(np.clip(ratio, 0.0, 1.0))
    stops = np.linspace(0.0, 1.0, len(BLUES))
    channels = np.array([hex_to_rgb(colour) for colour in BLUES], dtype=float)
    r, g, b = (int(round(np.interp(ratio, stops, channels[:, idx]))) for idx in range(3))
    return f"#{r:02x}{g:02x}{b:02x}"


def count_text_colour(count: int, max_count: int) -> str:
    return "#ffffff" if count > max_count / 2 else "#000000"


# Region diagram ------------------------------------------------------------
def _region_positions(radius: float) -> Dict[RegionCode, Point]:
    x_offset = radius / 1.5
    y_offset = radius / 3
    return {
        "100": (-x_offset - radius / 2, -y_offset),
        "010": (x_offset + radius / 2, -y_offset),
        "001": (0.0, radius / 1.5 + radius / 2),
        "110": (0.0, -y_offset - y_offset / 2),
        "101": (-x_offset / 2 - x_offset / 4, (-y_offset + radius / 1.5) / 2 + y_offset / 2),
        "011": (x_offset / 2 + x_offset / 4, (-y_offset + radius / 1.5) / 2 + y_offset / 2),
        "111": (0.0, y_offset / 2),
    }


def region_diagram_scene(region_counts: Dict[RegionCode, int], selection: SelectionState, extent: Extent) -> Scene:
    """Three overlapping circles with a clickable count per region."""
    title = "Overall mental health distribution"
    center_x = extent.width / 2
    center_y = extent.height / 2
    radius = min(extent.width, extent.height) / 4
    x_offset = radius / 1.5
    y_offset = radius / 3
    centres = ((-x_offset, -y_offset), (x_offset, -y_offset), (0.0, radius / 1.5))

    members = region_members(selection.active_region) if selection.is_region_selected else None
    shapes: List[Shape] = [Text(center_x, 20, title, size=16, bold=True)]

    for idx, ((dx, dy), (condition, colour)) in enumerate(zip(centres, REGION_CIRCLES)):
        if members is None:
            opacity = 0.5
        else:
            opacity = 0.7 if members[idx] else 0.2
        shapes.append(Circle(center_x + dx, center_y + dy, radius, colour, fill_opacity=opacity, tooltip=condition))
        label_y = dy - radius - 10 if dy < 0 else dy + radius + 20
        shapes.append(Text(center_x + dx, center_y + label_y, condition, size=14))

    for code, (dx, dy) in _region_positions(radius).items():
        x, y = center_x + dx, center_y + dy
        label = region_label(code)
        shapes.append(HitTarget(x - 20, y - 20, 40, 40, region=code, tooltip=label))
        colour = SELECTED_TEXT if selection.active_region == code else "#000000"
        shapes.append(Text(x, y, str(region_counts.get(code, 0)), color=colour, tooltip=label, region=code))

    legend_x = extent.width - 120
    legend_y = extent.height - 100
    for idx, (condition, colour) in enumerate(REGION_CIRCLES):
        shapes.append(Rect(legend_x, legend_y + idx * 25, 18, 18, fill=colour))
        shapes.append(Text(legend_x + 22, legend_y + idx * 25 + 9, condition, size=14, anchor="start"))

    return Scene(title=title, width=extent.width, height=extent.height, shapes=tuple(shapes))


# Frequency grid ------------------------------------------------------------
def _band(count: int, length: float, padding: float = 0.05) -> Tuple[List[float], float]:
    step = length / max(1.0, count - padding + 2 * padding)
    start = (length - step * (count - padding)) / 2
    return [start + step * idx for idx in range(count)], step * (1 - padding)


def frequency_grid_scene(cells: Sequence[FrequencyCell], selection: SelectionState, extent: Extent) -> GridScene:
    """
    Heat map of counts per CGPA bin (rows, lowest bin at the bottom) and year (columns).
    """
    title = region_title(selection.active_region)
    counts = grid_matrix(cells)
    max_count = int(counts.max()) if counts.size else 0
    inner_w = max(extent.width - GRID_MARGIN["left"] - GRID_MARGIN["right"], 1.0)
    inner_h = max(extent.height - GRID_MARGIN["top"] - GRID_MARGIN["bottom"], 1.0)

    year_labels = tuple(f"year {year}" for year in YEARS_OF_STUDY)
    x_positions, cell_w = _band(len(YEARS_OF_STUDY), inner_w)
    y_positions, cell_h = _band(len(CGPA_BIN_LABELS), inner_h)
    # First bin is drawn at the bottom.
    y_positions = list(reversed(y_positions))

    shapes: List[Shape] = [Text(extent.width / 2, GRID_MARGIN["top"] / 2, title, size=16, bold=True)]
    for cell in cells:
        row = CGPA_BIN_LABELS.index(cell.cgpa_bin)
        col = YEARS_OF_STUDY.index(cell.year)
        x = GRID_MARGIN["left"] + x_positions[col]
        y = GRID_MARGIN["top"] + y_positions[row]
        fill = sequential_blue(cell.count / max_count) if cell.count > 0 and max_count else EMPTY_CELL
        tooltip = f"CGPA: {cell.cgpa_bin}\nyear {cell.year}\n{cell.count} students"
        shapes.append(Rect(x, y, cell_w, cell_h, fill=fill, stroke="#ffffff", tooltip=tooltip))
        text_colour = count_text_colour(cell.count, max_count)
        shapes.append(Text(x + cell_w / 2, y + cell_h / 2, str(cell.count), color=text_colour))

    for col, label in enumerate(year_labels):
        x = GRID_MARGIN["left"] + x_positions[col] + cell_w / 2
        shapes.append(Text(x, GRID_MARGIN["top"] + inner_h + 14, label))
    for row, label in enumerate(CGPA_BIN_LABELS):
        y = GRID_MARGIN["top"] + y_positions[row] + cell_h / 2
        shapes.append(Text(GRID_MARGIN["left"] - 8, y, label, anchor="end"))
    shapes.append(Text(extent.width / 2, extent.height - GRID_MARGIN["bottom"] / 4, "Year of Study", size=14))
    shapes.append(Text(GRID_MARGIN["left"] / 2 - 30, extent.height / 2, "CGPA Range", size=14, rotation=-90))

    return GridScene(
        title=title,
        width=extent.width,
        height=extent.height,
        shapes=tuple(shapes),
        levels=(0, max_count),
    )


# Flow diagram --------------------------------------------------------------
def flow_diagram_scene(layout: FlowLayout, selection: SelectionState) -> Scene:
    title = "Sankey Diagram of Mental Health Conditions"
    extent = layout.extent
    if not layout.nodes:
        return placeholder_scene(title, extent, "No responses to chart.")

    inner_w = extent.width - MARGIN.left - MARGIN.right
    shapes: List[Shape] = [
        Text(MARGIN.left + inner_w / 2, MARGIN.top / 2, title, size=20),
        Text(MARGIN.left + inner_w / 2, MARGIN.top / 2 + 20, f"Condition: {selection.active_condition.label}", size=11,
             color="#555555"),
        Text(MARGIN.left - 75, extent.height / 2, "CGPA", size=12, rotation=-90),
    ]

    for link in layout.links:
        shapes.append(
            Path(link.path, stroke=link.color, stroke_width=link.stroke_width, opacity=0.6,
                 tooltip=f"Count = {link.weight}")
        )

    for node in layout.nodes:
        shapes.append(
            Rect(node.x0, node.y0, node.x1 - node.x0, node.y1 - node.y0, fill=node.color, stroke="#000000",
                 tooltip=f"{node.name}: {node.value}")
        )

    for node in layout.nodes:
        box = node.label
        if box is None:
            continue
        shapes.append(Rect(box.x, box.y, box.width, box.height, fill="#ffffff", opacity=0.7))
        shapes.append(Text(box.text_x, box.text_y, box.text, anchor=box.anchor))

    legend_top = extent.height - MARGIN.bottom + 6
    columns = (
        (FlowStage.CGPA_BIN, 0.0, " CGPA"),
        (FlowStage.CONDITION, 240.0, ""),
        (FlowStage.TREATMENT, 480.0, ""),
    )
    for stage, offset, suffix in columns:
        entries = [node for node in layout.nodes if node.stage is stage]
        for idx, node in enumerate(entries):
            y = legend_top + idx * 16
            shapes.append(Rect(MARGIN.left + offset, y, 12, 12, fill=node.color, stroke="#000000"))
            shapes.append(Text(MARGIN.left + offset + 18, y + 6, node.name + suffix, size=11, anchor="start"))

    return Scene(title=title, width=extent.width, height=extent.height, shapes=tuple(shapes))
