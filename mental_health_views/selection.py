from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from .flow_graph import Condition, FlowGraph, UnknownConditionError, build_flow_graph
from .frequency import FrequencyCell, aggregate_grid, aggregate_regions
from .records import Record
from .regions import RegionCode, is_selectable_region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    active_region: Optional[RegionCode] = None
    active_condition: Condition = Condition.DEPRESSION

    @property
    def is_region_selected(self) -> bool:
        return self.active_region is not None


@dataclass(frozen=True)
class CoordinatedViews:
    """Everything the three views need for one render."""

    selection: SelectionState
    region_counts: Dict[RegionCode, int]
    grid: Tuple[FrequencyCell, ...]
    flow: FlowGraph
    total_records: int


Listener = Callable[[CoordinatedViews], None]


class SelectionCoordinator:
    """
    Owns the selection state and the aggregates derived from it.

    Every accepted transition recomputes synchronously and notifies listeners with a
    fresh `CoordinatedViews` snapshot. Invalid input is logged and ignored.
    """

    def __init__(self, records: Iterable[Record] = (), *, condition: Union[Condition, str] = Condition.DEPRESSION):
        self._state = SelectionState(active_condition=Condition.parse(condition))
        self._listeners: List[Listener] = []
        self._records: Tuple[Record, ...] = ()
        self._region_counts: Dict[RegionCode, int] = {}
        self._grid: Tuple[FrequencyCell, ...] = ()
        self._flow = FlowGraph(condition=self._state.active_condition)
        self._recompute(regions=True, grid=True, flow=True)
        if records:
            self.load(records)

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    @property
    def views(self) -> CoordinatedViews:
        return CoordinatedViews(
            selection=self._state,
            region_counts=dict(self._region_counts),
            grid=self._grid,
            flow=self._flow,
            total_records=len(self._records),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Transitions ---------------------------------------------------------
    def load(self, records: Iterable[Record]) -> None:
        self._records = tuple(records)
        logger.info("Record collection replaced (%d records).", len(self._records))
        self._recompute(regions=True, grid=True, flow=True)
        self._notify()

    def select(self, code: object) -> bool:
        if not is_selectable_region(code):
            logger.warning("Rejected region selection %r; keeping %r.", code, self._state.active_region)
            return False
        self._state = replace(self._state, active_region=code)
        logger.info("Region %s selected.", code)
        self._recompute(grid=True)
        self._notify()
        return True

    def reset(self) -> None:
        self._state = replace(self._state, active_region=None)
        logger.info("Region selection cleared.")
        self._recompute(grid=True)
        self._notify()

    def set_condition(self, value: Union[Condition, str]) -> bool:
        try:
            condition = Condition.parse(value)
        except UnknownConditionError:
            logger.warning("Rejected condition %r; keeping %s.", value, self._state.active_condition.label)
            return False
        changed = condition is not self._state.active_condition
        self._state = replace(self._state, active_condition=condition)
        logger.info("Active condition set to %s.", condition.label)
        self._recompute(grid=True, flow=changed)
        self._notify()
        return True

    # Internals -----------------------------------------------------------
    def _recompute(self, *, regions: bool = False, grid: bool = False, flow: bool = False) -> None:
        if regions:
            self._region_counts = aggregate_regions(self._records)
        if grid:
            self._grid = tuple(aggregate_grid(self._records, self._state.active_region))
        if flow:
            self._flow = build_flow_graph(self._records, self._state.active_condition)

    def _notify(self) -> None:
        snapshot = self.views
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Selection listener %r failed.", listener)
