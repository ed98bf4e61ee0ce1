"""Global hotkeys based on pynput, one callback per key."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Mapping, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger("voicecount.hotkey")


class GlobalHotkeyAdapter:
    """Calls the bound callback once per key press; auto-repeat is ignored."""

    def __init__(self, bindings: Mapping[str, Callable[[], None]]) -> None:
        self._bindings = dict(bindings)
        self._listener: Optional[object] = None
        self._held: set[str] = set()
        self._lock = threading.Lock()

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._bindings)

    def start(self) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
        self._listener.start()
        logger.info("hotkeys active: %s", ", ".join(self._bindings))

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None

    def _on_press(self, key: object) -> None:
        name = str(key)
        callback = self._bindings.get(name)
        if callback is None:
            return
        with self._lock:
            if name in self._held:
                return
            self._held.add(name)
        callback()

    def _on_release(self, key: object) -> None:
        with self._lock:
            self._held.discard(str(key))
