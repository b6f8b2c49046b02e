"""Lightweight in-process task execution and fan-out joining."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, List, Optional, TypeVar
import threading

from trackplay.backend.common.errors import TaskError
from trackplay.backend.common.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")



@dataclass
class TaskSpec:
    fn: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = None
    name: str = "task"

    def __post_init__(self):
        if self.kwargs is None:
            self.kwargs = {}


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one task: either a value or the exception it raised."""

    name: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskRunner:
    """Tiny in-process task runner backed by a thread pool."""
    def __init__(self, max_workers: int = 4, *, context: Optional[str] = None):
        self._context = context or "task_runner"
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix=f"trackplay-{self._context}",
        )
        self._closed = False
        self._lock = threading.Lock()

    def submit(self, spec: TaskSpec) -> Future:
        with self._lock:
            if self._closed:
                raise TaskError("TaskRunner is closed")

            def _wrapped():
                log.debug("task_start", extra={"task": spec.name, "context": self._context})
                try:
                    result = spec.fn(*spec.args, **spec.kwargs)
                except Exception as e:  # noqa: BLE001
                    log.debug("task_fail", extra={"task": spec.name, "error": str(e)})
                    raise
                log.debug("task_done", extra={"task": spec.name})
                return result

            return self._executor.submit(_wrapped)

    def close(self, wait: bool = True) -> None:
        with self._lock:
            if not self._closed:
                self._executor.shutdown(wait=wait, cancel_futures=not wait)
                self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close(wait=True)


def gather_settled(runner: TaskRunner, specs: Iterable[TaskSpec]) -> List[Settled[Any]]:
    """Run every task concurrently and wait for all of them.

    Never fails fast: a task that raises yields a :class:`Settled` carrying the
    error while its siblings keep running. Results follow submission order.
    """

    submitted = [(spec.name, runner.submit(spec)) for spec in specs]
    if not submitted:
        return []

    wait([future for _, future in submitted])

    results: List[Settled[Any]] = []
    for name, future in submitted:
        error = future.exception()
        if error is not None:
            results.append(Settled(name=name, error=error))
        else:
            results.append(Settled(name=name, value=future.result()))

    return results
