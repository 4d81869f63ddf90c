from __future__ import annotations

import logging
import os
import pathlib
import sys
from typing import Callable, List, Optional, Tuple

import numpy as np
import pyqtgraph as pg
from PyQt6 import QtCore, QtGui, QtWidgets

from mental_health_views.debounce import RESIZE_DEBOUNCE_MS, DebouncedCall
from mental_health_views.flow_graph import Condition
from mental_health_views.flow_layout import Extent, layout_flow
from mental_health_views.records import DatasetFormatError, load_dataset_from_path
from mental_health_views.regions import RegionCode
from mental_health_views.scenes import (
    BACKGROUND,
    BLUES,
    Circle,
    GridScene,
    HitTarget,
    Path,
    Rect,
    Scene,
    Text,
    flow_diagram_scene,
    frequency_grid_scene,
    hex_to_rgb,
    region_diagram_scene,
)
from mental_health_views.selection import CoordinatedViews, SelectionCoordinator

DATASET_PATH = pathlib.Path(os.environ.get("MENTAL_HEALTH_DATASET", "data/Cleaned_Student_Mental_Health.csv"))
LOG_NAME = "mental_health_views"
LOG_FILE_PATH = pathlib.Path.cwd() / "mental_health_views.log"
LABEL_FONT = ("Segoe UI", 12)
LOADING_MESSAGE = "Loading survey responses…"
UNAVAILABLE_MESSAGE = "Dataset unavailable."


def configure_logging() -> logging.Logger:
    logger = logging.getLogger(LOG_NAME)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        file_handler = logging.FileHandler(LOG_FILE_PATH, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.propagate = False
        logger.info("Logging initialised. Writing to %s", LOG_FILE_PATH)
    return logger


BASE_LOGGER = configure_logging()


class _HitTargetItem(QtWidgets.QGraphicsRectItem):
    def __init__(self, target: HitTarget, on_click: Callable[[RegionCode], None]):
        super().__init__(target.x, target.y, target.width, target.height)
        self._region = target.region
        self._on_click = on_click
        self.setPen(QtGui.QPen(QtCore.Qt.PenStyle.NoPen))
        self.setBrush(QtGui.QBrush(QtCore.Qt.BrushStyle.NoBrush))
        self.setCursor(QtCore.Qt.CursorShape.PointingHandCursor)
        self.setAcceptHoverEvents(True)
        if target.tooltip:
            self.setToolTip(target.tooltip)

    @property
    def region(self) -> RegionCode:
        return self._region

    def shape(self) -> QtGui.QPainterPath:  # type: ignore[override]
        path = QtGui.QPainterPath()
        path.addRect(self.rect())
        return path

    def mousePressEvent(self, event: QtWidgets.QGraphicsSceneMouseEvent) -> None:  # type: ignore[override]
        if event.button() == QtCore.Qt.MouseButton.LeftButton:
            QtWidgets.QToolTip.hideText()
            # The click re-renders the scene that owns this item.
            region, on_click = self._region, self._on_click
            QtCore.QTimer.singleShot(0, lambda: on_click(region))
            event.accept()
            return
        super().mousePressEvent(event)


def _scene_item(shape, on_region_click: Callable[[RegionCode], None]) -> QtWidgets.QGraphicsItem:
    """Convert one scene shape into a graphics item in top-left-origin coordinates."""
    if isinstance(shape, HitTarget):
        return _HitTargetItem(shape, on_region_click)
    if isinstance(shape, Rect):
        item = QtWidgets.QGraphicsRectItem(shape.x, shape.y, shape.width, shape.height)
        item.setBrush(QtGui.QBrush(QtGui.QColor(shape.fill)))
        if shape.stroke:
            item.setPen(QtGui.QPen(QtGui.QColor(shape.stroke), 1))
        else:
            item.setPen(QtGui.QPen(QtCore.Qt.PenStyle.NoPen))
        item.setOpacity(shape.opacity)
    elif isinstance(shape, Circle):
        item = QtWidgets.QGraphicsEllipseItem(shape.cx - shape.r, shape.cy - shape.r, 2 * shape.r, 2 * shape.r)
        fill = QtGui.QColor(shape.fill)
        fill.setAlphaF(shape.fill_opacity)
        item.setBrush(QtGui.QBrush(fill))
        item.setPen(QtGui.QPen(QtGui.QColor(shape.stroke), shape.stroke_width))
    elif isinstance(shape, Path):
        (x0, y0), (cx1, cy1), (cx2, cy2), (x1, y1) = shape.points
        path = QtGui.QPainterPath(QtCore.QPointF(x0, y0))
        path.cubicTo(QtCore.QPointF(cx1, cy1), QtCore.QPointF(cx2, cy2), QtCore.QPointF(x1, y1))
        item = QtWidgets.QGraphicsPathItem(path)
        pen = QtGui.QPen(QtGui.QColor(shape.stroke), shape.stroke_width)
        pen.setCapStyle(QtCore.Qt.PenCapStyle.FlatCap)
        item.setPen(pen)
        item.setBrush(QtGui.QBrush(QtCore.Qt.BrushStyle.NoBrush))
        item.setOpacity(shape.opacity)
    elif isinstance(shape, Text):
        item = QtWidgets.QGraphicsSimpleTextItem(shape.text)
        font = QtGui.QFont(LABEL_FONT[0])
        font.setPixelSize(max(1, int(round(shape.size))))
        font.setBold(shape.bold)
        item.setFont(font)
        item.setBrush(QtGui.QBrush(QtGui.QColor(shape.color)))
        bounds = item.boundingRect()
        if shape.anchor == "start":
            dx = 0.0
        elif shape.anchor == "end":
            dx = -bounds.width()
        else:
            dx = -bounds.width() / 2
        item.setPos(shape.x + dx, shape.y - bounds.height() / 2)
        if shape.rotation:
            item.setTransformOriginPoint(-dx, bounds.height() / 2)
            item.setRotation(shape.rotation)
        if shape.region:
            item.setCursor(QtCore.Qt.CursorShape.PointingHandCursor)
    else:
        raise TypeError(f"Unsupported shape: {shape!r}")
    tooltip = getattr(shape, "tooltip", None)
    if tooltip:
        item.setToolTip(tooltip)
    return item


def _placeholder_item(message: str) -> QtWidgets.QGraphicsSimpleTextItem:
    item = QtWidgets.QGraphicsSimpleTextItem(message)
    item.setFont(QtGui.QFont("Segoe UI", 11))
    item.setBrush(QtGui.QColor("#6e7392"))
    item.setPos(20, 20)
    return item


class SceneCanvas(QtWidgets.QGraphicsView):
    """Draws a `Scene` description; each new scene replaces the previous one whole."""

    def __init__(self, placeholder: str, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self.setRenderHints(QtGui.QPainter.RenderHint.Antialiasing | QtGui.QPainter.RenderHint.TextAntialiasing)
        self.setFrameShape(QtWidgets.QFrame.Shape.NoFrame)
        self.setHorizontalScrollBarPolicy(QtCore.Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(QtCore.Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setMinimumSize(360, 280)

        self._scene = QtWidgets.QGraphicsScene(self)
        self.setScene(self._scene)
        self._placeholder_text = placeholder
        self._current: Optional[Scene] = None
        self.on_region_click: Optional[Callable[[RegionCode], None]] = None
        self.on_resize: Optional[Callable[[Extent], None]] = None
        self.clear()

    @property
    def extent(self) -> Extent:
        size = self.viewport().size()
        return Extent(width=float(max(size.width(), 360)), height=float(max(size.height(), 280)))

    @property
    def current_scene(self) -> Optional[Scene]:
        return self._current

    @property
    def placeholder_text(self) -> str:
        return self._placeholder_text

    def clear(self, message: Optional[str] = None) -> None:
        if message is not None:
            self._placeholder_text = message
        self._scene.clear()
        self._current = None
        self._scene.addItem(_placeholder_item(self._placeholder_text))

    def show_scene(self, scene: Scene) -> None:
        items = [_scene_item(shape, self.handle_region_click) for shape in scene.shapes]
        self._scene.clear()
        background = self._scene.addRect(0, 0, scene.width, scene.height, QtGui.QPen(QtCore.Qt.PenStyle.NoPen),
                                         QtGui.QBrush(QtGui.QColor(scene.background)))
        background.setZValue(-100)
        for z, item in enumerate(items):
            item.setZValue(z)
            self._scene.addItem(item)
        rect = QtCore.QRectF(0, 0, scene.width, scene.height)
        self._scene.setSceneRect(rect)
        self.fitInView(rect, QtCore.Qt.AspectRatioMode.KeepAspectRatio)
        self._current = scene

    def handle_region_click(self, region: RegionCode) -> None:
        if self.on_region_click:
            self.on_region_click(region)

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        if self._current is not None:
            self.fitInView(self._scene.sceneRect(), QtCore.Qt.AspectRatioMode.KeepAspectRatio)
        if self.on_resize:
            self.on_resize(self.extent)


class FrequencyGridWidget(pg.GraphicsLayoutWidget):
    """Heat map sink: draws a `GridScene` in a pyqtgraph view box next to a colour bar."""

    on_resize: Optional[Callable[[Extent], None]] = None

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self.setBackground(BACKGROUND)
        self.setMinimumSize(360, 280)

        self._view = self.addViewBox(row=0, col=0)
        self._view.setMenuEnabled(False)
        self._view.setMouseEnabled(x=False, y=False)
        # Scene coordinates grow downwards.
        self._view.invertY(True)
        self._view.setAspectLocked(True)

        positions = np.linspace(0.0, 1.0, len(BLUES))
        colours = np.array([hex_to_rgb(colour) for colour in BLUES], dtype=np.ubyte)
        self._colour_bar = pg.ColorBarItem(
            values=(0, 1),
            colorMap=pg.ColorMap(positions, colours),
            interactive=False,
            width=12,
        )
        self.addItem(self._colour_bar, row=0, col=1)

        self._items: List[QtWidgets.QGraphicsItem] = []
        self._current: Optional[GridScene] = None
        self._placeholder_text = LOADING_MESSAGE
        self.clear_grid()

    @property
    def extent(self) -> Extent:
        rect = self._view.boundingRect()
        return Extent(width=float(max(rect.width(), 360)), height=float(max(rect.height(), 280)))

    @property
    def current_scene(self) -> Optional[GridScene]:
        return self._current

    @property
    def item_count(self) -> int:
        return len(self._items)

    @property
    def placeholder_text(self) -> str:
        return self._placeholder_text

    def clear_grid(self, message: Optional[str] = None) -> None:
        if message is not None:
            self._placeholder_text = message
        self._replace_items([_placeholder_item(self._placeholder_text)])
        self._colour_bar.setLevels(values=(0, 1))
        self._view.autoRange()
        self._current = None

    def show_grid(self, scene: GridScene) -> None:
        items = [_scene_item(shape, lambda _region: None) for shape in scene.shapes]
        self._replace_items(items)
        low, high = scene.levels
        self._colour_bar.setLevels(values=(low, max(high, low + 1)))
        self._view.setRange(rect=QtCore.QRectF(0, 0, scene.width, scene.height), padding=0)
        self._current = scene

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        if self.on_resize:
            self.on_resize(self.extent)

    def _replace_items(self, items: List[QtWidgets.QGraphicsItem]) -> None:
        for item in self._items:
            self._view.removeItem(item)
        for z, item in enumerate(items):
            item.setZValue(z)
            self._view.addItem(item)
        self._items = items


def _qt_text_measure(font: QtGui.QFont) -> Callable[[str], Tuple[float, float]]:
    metrics = QtGui.QFontMetricsF(font)

    def measure(text: str) -> Tuple[float, float]:
        rect = metrics.boundingRect(text)
        return rect.width(), rect.height()

    return measure


class MentalHealthViewsApp(QtWidgets.QMainWindow):
    def __init__(self, dataset_path: pathlib.Path = DATASET_PATH):
        super().__init__()
        self.setWindowTitle("Analysis of Student Mental Health Conditions with Academics")
        self.resize(1400, 900)

        self.logger = BASE_LOGGER.getChild("ui")
        self.logger.info("MentalHealthViewsApp initialising.")

        self._dataset_path = pathlib.Path(dataset_path)
        label_font = QtGui.QFont(LABEL_FONT[0])
        label_font.setPixelSize(LABEL_FONT[1])
        self._measure_text = _qt_text_measure(label_font)
        self.coordinator = SelectionCoordinator()
        self.coordinator.subscribe(self._on_views_changed)
        self._loaded = False
        self._resize_debounce = DebouncedCall(self._on_resize_settled, RESIZE_DEBOUNCE_MS, parent=self)

        self._apply_theme()
        self._build_ui()
        self.logger.info("User interface initialised. Awaiting dataset.")

    # UI construction -----------------------------------------------------
    def _apply_theme(self) -> None:
        self.setStyleSheet(
            """
            QLabel#HeaderTitle { font-size: 22px; font-weight: 600; }
            QLabel#HeaderHint { color: #616161; font-size: 12px; }
            QPushButton { background-color: #616161; color: #ffffff; border-radius: 4px; padding: 4px 14px; }
            QPushButton:hover { background-color: #757575; }
            """
        )

    def _build_ui(self) -> None:
        central_widget = QtWidgets.QWidget()
        self.setCentralWidget(central_widget)
        root_layout = QtWidgets.QVBoxLayout(central_widget)
        root_layout.setContentsMargins(16, 16, 16, 16)
        root_layout.setSpacing(8)

        root_layout.addWidget(self._build_header())

        body = QtWidgets.QHBoxLayout()
        body.setSpacing(8)

        left_column = QtWidgets.QVBoxLayout()
        self.region_canvas = SceneCanvas(LOADING_MESSAGE)
        self.region_canvas.on_region_click = self.on_region_click
        self.region_canvas.on_resize = self._schedule_rerender
        self.grid_widget = FrequencyGridWidget()
        self.grid_widget.on_resize = self._schedule_rerender
        left_column.addWidget(self.region_canvas, stretch=1)
        left_column.addWidget(self.grid_widget, stretch=1)

        right_column = QtWidgets.QVBoxLayout()
        picker_row = QtWidgets.QHBoxLayout()
        picker_row.addStretch(1)
        picker_row.addWidget(QtWidgets.QLabel("Select Mental Condition:"))
        self.condition_combo = QtWidgets.QComboBox()
        self.condition_combo.addItems([condition.label for condition in Condition])
        self.condition_combo.currentTextChanged.connect(self._on_condition_changed)
        picker_row.addWidget(self.condition_combo)
        picker_row.addStretch(1)
        right_column.addLayout(picker_row)
        self.flow_canvas = SceneCanvas(LOADING_MESSAGE)
        self.flow_canvas.on_resize = self._schedule_rerender
        right_column.addWidget(self.flow_canvas, stretch=1)

        body.addLayout(left_column, stretch=1)
        body.addLayout(right_column, stretch=1)
        root_layout.addLayout(body, stretch=1)

        self.statusBar().showMessage(f"Loading {self._dataset_path}. Logging to {LOG_FILE_PATH.name}.")

    def _build_header(self) -> QtWidgets.QWidget:
        frame = QtWidgets.QFrame()
        layout = QtWidgets.QVBoxLayout(frame)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        title = QtWidgets.QLabel("Analysis of Student Mental Health Conditions with Academics")
        title.setObjectName("HeaderTitle")
        title.setAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)

        self.reset_button = QtWidgets.QPushButton("Reset")
        self.reset_button.clicked.connect(self.coordinator.reset)
        button_row = QtWidgets.QHBoxLayout()
        button_row.addStretch(1)
        button_row.addWidget(self.reset_button)
        button_row.addStretch(1)

        hint = QtWidgets.QLabel(
            "Hover over different regions of the chart to know more! "
            "Click on the Venn diagram to have more control over the subsets of mental conditions."
        )
        hint.setObjectName("HeaderHint")
        hint.setAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)

        layout.addWidget(title)
        layout.addLayout(button_row)
        layout.addWidget(hint)
        return frame

    # Data ----------------------------------------------------------------
    def load_dataset(self) -> None:
        self.logger.info("Loading survey dataset from %s", self._dataset_path)
        try:
            dataset = load_dataset_from_path(self._dataset_path)
        except DatasetFormatError as exc:
            self.logger.exception("Failed to load survey dataset from %s", self._dataset_path)
            self._show_load_failure(f"Failed to load dataset: {exc}")
            return
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.exception("Unexpected error while loading %s", self._dataset_path)
            self._show_load_failure(f"Failed to load dataset: {exc}")
            return
        self._loaded = True
        self.coordinator.load(dataset.records)
        message = f"Loaded {len(dataset):,} responses."
        skipped = dataset.malformed_cgpa_rows
        if skipped:
            message += f" {skipped} without a numeric CGPA are left out of CGPA bins."
        self.statusBar().showMessage(message, 8000)

    def _show_load_failure(self, message: str) -> None:
        self._loaded = False
        self.region_canvas.clear(UNAVAILABLE_MESSAGE)
        self.flow_canvas.clear(UNAVAILABLE_MESSAGE)
        self.grid_widget.clear_grid(UNAVAILABLE_MESSAGE)
        self.statusBar().showMessage(message)

    # Selection -----------------------------------------------------------
    def on_region_click(self, code: RegionCode) -> None:
        self.coordinator.select(code)

    def _on_condition_changed(self, text: str) -> None:
        if not self.coordinator.set_condition(text):
            self.statusBar().showMessage(f"Unknown condition {text!r}.", 5000)

    # Rendering -----------------------------------------------------------
    def _schedule_rerender(self, _extent: Extent) -> None:
        self._resize_debounce.schedule()

    def _on_resize_settled(self) -> None:
        if self._loaded:
            self._render(self.coordinator.views)

    def _on_views_changed(self, views: CoordinatedViews) -> None:
        if self._loaded:
            self._render(views)

    def _render(self, views: CoordinatedViews) -> None:
        selection = views.selection
        self.region_canvas.show_scene(
            region_diagram_scene(views.region_counts, selection, self.region_canvas.extent)
        )
        self.grid_widget.show_grid(frequency_grid_scene(views.grid, selection, self.grid_widget.extent))
        flow_layout = layout_flow(views.flow, self.flow_canvas.extent, measure_text=self._measure_text)
        self.flow_canvas.show_scene(flow_diagram_scene(flow_layout, selection))


def main() -> None:
    logger = BASE_LOGGER.getChild("runtime")
    logger.info("Starting QApplication event loop.")
    app = QtWidgets.QApplication(sys.argv)
    window = MentalHealthViewsApp()
    window.show()
    QtCore.QTimer.singleShot(0, window.load_dataset)
    exit_code = app.exec()
    logger.info("Application closed with exit code %s", exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
