from __future__ import annotations

from typing import Any, Callable, Optional, Tuple

from PyQt6 import QtCore

RESIZE_DEBOUNCE_MS = 200


class DebouncedCall(QtCore.QObject):
    """
    A single pending call that every `schedule` pushes back.

    Scheduling again before the delay elapses cancels the earlier call; only the
    latest arguments are delivered.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        delay_ms: int = RESIZE_DEBOUNCE_MS,
        parent: Optional[QtCore.QObject] = None,
    ):
        super().__init__(parent)
        self._callback = callback
        self._args: Optional[Tuple[Any, ...]] = None
        self._timer = QtCore.QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(delay_ms)
        self._timer.timeout.connect(self._fire)

    @property
    def pending(self) -> bool:
        return self._args is not None

    @property
    def delay_ms(self) -> int:
        return self._timer.interval()

    def schedule(self, *args: Any) -> None:
        self._args = args
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()
        self._args = None

    def flush(self) -> None:
        if self.pending:
            self._timer.stop()
            self._fire()

    def _fire(self) -> None:
        args, self._args = self._args, None
        if args is not None:
            self._callback(*args)
