from __future__ import annotations

import pytest
from PyQt6 import QtCore, QtGui, QtTest

import pyqt_app
from conftest import survey_csv, survey_row
from mental_health_views.debounce import RESIZE_DEBOUNCE_MS
from mental_health_views.regions import region_title
from pyqt_app import UNAVAILABLE_MESSAGE, MentalHealthViewsApp, _HitTargetItem


@pytest.fixture
def survey_path(tmp_path):
    path = tmp_path / "survey.csv"
    path.write_bytes(
        survey_csv(
            [
                survey_row(depression="Yes", panic="Yes", cgpa="3.2", year="year 2"),
                survey_row(anxiety="Yes", cgpa="3.50 - 4.00", year="year 1", treatment="Yes"),
                survey_row(cgpa="2.1", year="year 3"),
            ]
        )
    )
    return path


@pytest.fixture
def loaded_window(qt_app, survey_path):
    window = MentalHealthViewsApp(survey_path)
    window.load_dataset()
    yield window
    window.close()


def _assert_unavailable(window):
    assert window.region_canvas.current_scene is None
    assert window.flow_canvas.current_scene is None
    assert window.grid_widget.current_scene is None
    assert window.region_canvas.placeholder_text == UNAVAILABLE_MESSAGE
    assert window.flow_canvas.placeholder_text == UNAVAILABLE_MESSAGE
    assert window.grid_widget.placeholder_text == UNAVAILABLE_MESSAGE
    assert window.statusBar().currentMessage().startswith("Failed to load dataset")


def test_missing_dataset_leaves_views_empty(qt_app, tmp_path):
    window = MentalHealthViewsApp(tmp_path / "absent.csv")

    window.load_dataset()

    _assert_unavailable(window)
    window.close()


def test_non_utf8_dataset_leaves_views_empty(qt_app, tmp_path):
    path = tmp_path / "latin1.csv"
    path.write_bytes(survey_csv([survey_row(depression="Yes")]).replace(b"Yes", b"Y\xe9s"))
    window = MentalHealthViewsApp(path)

    window.load_dataset()

    _assert_unavailable(window)
    window.close()


def test_unexpected_loader_error_is_contained(qt_app, survey_path, monkeypatch):
    def explode(path):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(pyqt_app, "load_dataset_from_path", explode)
    window = MentalHealthViewsApp(survey_path)

    window.load_dataset()

    _assert_unavailable(window)
    assert "disk on fire" in window.statusBar().currentMessage()
    window.close()


def test_loaded_dataset_renders_all_views(loaded_window):
    assert loaded_window.coordinator.views.total_records == 3
    assert loaded_window.region_canvas.current_scene is not None
    assert loaded_window.flow_canvas.current_scene is not None
    grid = loaded_window.grid_widget.current_scene
    assert grid.title == region_title(None)
    assert grid.levels == (0, 1)
    assert loaded_window.grid_widget.item_count == len(grid.shapes)


def test_hit_target_click_selects_region(loaded_window):
    loaded_window.show()
    QtTest.QTest.qWait(50)
    loaded_window._resize_debounce.flush()
    canvas = loaded_window.region_canvas

    targets = [item for item in canvas.scene().items() if isinstance(item, _HitTargetItem)]
    assert sorted(item.region for item in targets) == sorted(["100", "010", "001", "110", "101", "011", "111"])
    target = next(item for item in targets if item.region == "101")
    point = canvas.mapFromScene(target.sceneBoundingRect().center())
    QtTest.QTest.mouseClick(
        canvas.viewport(), QtCore.Qt.MouseButton.LeftButton, QtCore.Qt.KeyboardModifier.NoModifier, point
    )
    QtTest.QTest.qWait(50)

    assert loaded_window.coordinator.state.active_region == "101"
    assert loaded_window.grid_widget.current_scene.title == region_title("101")


def test_resize_burst_renders_once(loaded_window, monkeypatch):
    renders = []
    monkeypatch.setattr(loaded_window, "_render", renders.append)

    for width, height in ((500, 400), (520, 410), (540, 420)):
        event = QtGui.QResizeEvent(QtCore.QSize(width, height), QtCore.QSize(480, 380))
        loaded_window.region_canvas.resizeEvent(event)
        loaded_window.flow_canvas.resizeEvent(event)
    assert renders == []

    QtTest.QTest.qWait(RESIZE_DEBOUNCE_MS * 3)

    assert len(renders) == 1
