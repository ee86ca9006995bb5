"""
Frame producers consumed by the renderer.

A source exposes its frame size, a readiness flag and the most recent decoded
frame. Depth frames are (H,W) float32 in [0, 1]; color frames are (H,W,4) uint8.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol, Sequence

import numpy as np


class FrameSource(Protocol):
    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    @property
    def ready(self) -> bool: ...

    def latest(self) -> np.ndarray: ...


class StillFrameSource:
    """Serves one frame forever."""

    def __init__(self, frame: np.ndarray) -> None:
        self._frame = np.asarray(frame)
        if self._frame.ndim not in (2, 3):
            raise ValueError("frame must be (H,W) or (H,W,C)")

    @property
    def width(self) -> int:
        return int(self._frame.shape[1])

    @property
    def height(self) -> int:
        return int(self._frame.shape[0])

    @property
    def ready(self) -> bool:
        return True

    def latest(self) -> np.ndarray:
        return self._frame


class SequenceFrameSource:
    """
    Replays frames loaded on demand from files, advancing one frame per `latest()`.
    """

    def __init__(self, paths: Sequence[Path], loader: Callable[[Path], np.ndarray], loop: bool = True) -> None:
        self._paths = [Path(p) for p in paths]
        if not self._paths:
            raise ValueError("empty frame sequence")
        self._loader = loader
        self._loop = bool(loop)
        self._pos = 0
        self._loaded = 0
        self._current = loader(self._paths[0])

    @property
    def width(self) -> int:
        return int(self._current.shape[1])

    @property
    def height(self) -> int:
        return int(self._current.shape[0])

    @property
    def ready(self) -> bool:
        return self._loop or self._pos < len(self._paths)

    def latest(self) -> np.ndarray:
        if self._pos >= len(self._paths):
            if not self._loop:
                return self._current
            self._pos = 0
        if self._pos != self._loaded:
            self._current = self._loader(self._paths[self._pos])
            self._loaded = self._pos
        self._pos += 1
        return self._current


@dataclass(frozen=True)
class StreamSet:
    color: FrameSource
    depth: FrameSource
    identity: str


class StreamAcquisition:
    """
    One-shot background open of the color + depth streams.

    The render loop polls `ready`; a failure is kept and handed out once by
    `take_error()`. After `cancel()` a late result is dropped.
    """

    def __init__(self, opener: Callable[[], StreamSet]) -> None:
        self._opener = opener
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._cancelled = False
        self._streams: StreamSet | None = None
        self._error: BaseException | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("stream acquisition already started")
        self._thread = threading.Thread(target=self._run, name="stream-acquisition", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        try:
            streams = self._opener()
        except Exception as e:
            with self._lock:
                if not self._cancelled:
                    self._error = e
        else:
            with self._lock:
                if not self._cancelled:
                    self._streams = streams
        finally:
            self._done.set()

    def cancel(self, join_timeout: float | None = None) -> None:
        """Drop any result; with `join_timeout`, also wait that long for the thread to exit."""
        with self._lock:
            self._cancelled = True
            self._streams = None
            self._error = None
        if join_timeout is not None and self._thread is not None:
            self._thread.join(join_timeout)

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    @property
    def ready(self) -> bool:
        with self._lock:
            return self._streams is not None

    @property
    def streams(self) -> StreamSet | None:
        with self._lock:
            return self._streams

    def take_error(self) -> BaseException | None:
        with self._lock:
            err, self._error = self._error, None
            return err
