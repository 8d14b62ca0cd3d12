"""Background render scheduling where a new request supersedes the old one."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from .errors import ComputationAborted
from .renderer import DEFAULT_ROWS_PER_BATCH, KEEP_INTERIOR, CancellationToken, RenderResult, recolor, render_frame
from .request import RGB, FractalRequest


class RenderSession:
    """Run renders on one background worker and keep only the newest result.

    Submitting a request cancels the render that is still in flight.  The
    future of a superseded render resolves to ``None``; only the newest
    submission may publish to :attr:`current` and call ``on_result``.
    Callbacks run on the publishing thread, one at a time, in the order the
    results became current.
    """

    def __init__(
        self,
        *,
        on_result: Optional[Callable[[RenderResult], None]] = None,
        rows_per_batch: int = DEFAULT_ROWS_PER_BATCH,
        device: Optional[str] = None,
    ) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="fractal-render")
        self._lock = threading.Lock()
        self._deliver_lock = threading.RLock()
        self._generation = 0
        self._token: Optional[CancellationToken] = None
        self._current: Optional[RenderResult] = None
        self._current_generation = 0
        self._on_result = on_result
        self._rows_per_batch = rows_per_batch
        self._device = device

    @property
    def current(self) -> Optional[RenderResult]:
        with self._lock:
            return self._current

    def submit(self, request: FractalRequest) -> "Future[Optional[RenderResult]]":
        """Schedule ``request`` and cancel whatever was running before it."""

        request.validate()
        token = CancellationToken()
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._generation += 1
            generation = self._generation
            self._token = token
        return self._executor.submit(self._run, request, token, generation)

    def _run(self, request: FractalRequest, token: CancellationToken, generation: int) -> Optional[RenderResult]:
        try:
            result = render_frame(request, token=token, rows_per_batch=self._rows_per_batch, device=self._device)
        except ComputationAborted:
            return None
        return self._publish(result, generation)

    def _publish(self, result: RenderResult, generation: int) -> Optional[RenderResult]:
        with self._deliver_lock:
            with self._lock:
                if generation != self._generation:
                    return None
                self._current = result
                self._current_generation = generation
                self._token = None
            if self._on_result is not None:
                self._on_result(result)
        return result

    def recolor(
        self,
        start_color: RGB,
        end_color: RGB,
        interior_color: Optional[RGB] = KEEP_INTERIOR,
    ) -> Optional[RenderResult]:
        """Re-colour the current result in place of a full render.

        The current interior colour is kept unless ``interior_color`` is passed.
        """

        with self._lock:
            current = self._current
            generation = self._generation
            pending = self._current_generation != generation
        if current is None or pending:
            return None
        return self._publish(recolor(current, start_color, end_color, interior_color), generation)

    def cancel(self) -> None:
        with self._lock:
            if self._token is not None:
                self._token.cancel()
                self._token = None
            self._generation += 1

    def close(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "RenderSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
