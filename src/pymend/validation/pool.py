"""Worker pool for parallel patch validation.

This module provides the ValidationPool class that validates a lazy stream of
patches on a pool of worker threads. Only a bounded window of patches is in
flight at any time, so an unbounded (or very large) patch stream is never
materialized.

Workers share the base program read-only; each applies its patch to its own
copy. Cancellation is cooperative: ``cancel()`` sets a shared event, queued
validations are cancelled before they start and running ones stop between
test runs. A single test run never outlasts the Instrumentor's hard time
limit, so shutting the pool down is bounded too.
"""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
import logging
import os
import threading
from typing import TYPE_CHECKING, Self


if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from pymend.mutation.operations import Patch
    from pymend.validation.results import ValidationResult
    from pymend.validation.validator import PatchValidator


logger = logging.getLogger(__name__)


def _default_max_workers() -> int:
    """Return the default number of workers."""
    return os.cpu_count() or 4


class ValidationPool:
    """Manages a pool of worker threads validating patches.

    Attributes:
        max_workers: Maximum number of worker threads.
        window: Maximum number of patches submitted but not yet yielded.
        cancel_event: Set once the search should stop.

    Example:
        >>> with ValidationPool(validator, max_workers=4) as pool:  # doctest: +SKIP
        ...     for result in pool.validate_all(patches):
        ...         print(result.status)
    """

    def __init__(
        self,
        validator: PatchValidator,
        max_workers: int | None = None,
        window: int | None = None,
    ) -> None:
        """Initialize the validation pool.

        Args:
            validator: Validates one patch; shared by all workers.
            max_workers: Maximum number of worker threads. Defaults to CPU count.
            window: In-flight limit. Defaults to twice the number of workers.

        Raises:
            ValueError: If max_workers or window is not positive.
        """
        self._max_workers = max_workers if max_workers is not None else _default_max_workers()
        if self._max_workers <= 0:
            msg = f'max_workers must be positive, got {self._max_workers}'
            raise ValueError(msg)
        self._window = window if window is not None else 2 * self._max_workers
        if self._window <= 0:
            msg = f'window must be positive, got {self._window}'
            raise ValueError(msg)
        self._validator = validator
        self._cancel_event = threading.Event()
        self._executor: ThreadPoolExecutor | None = None
        self._shutdown_called = False

    @property
    def max_workers(self) -> int:
        """Return the maximum number of workers."""
        return self._max_workers

    @property
    def window(self) -> int:
        """Return the in-flight limit."""
        return self._window

    @property
    def cancel_event(self) -> threading.Event:
        """Return the shared cancellation event."""
        return self._cancel_event

    def __enter__(self) -> Self:
        """Enter the context manager, starting the worker threads."""
        self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix='pymend-validate')
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit the context manager, shutting down the pool."""
        if exc_type is not None:
            self.cancel()
        self.shutdown(wait=True)

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the worker pool.

        Args:
            wait: If True, wait for running validations to complete. Queued
                  validations are cancelled either way once ``cancel`` was called.
        """
        if self._shutdown_called:
            return

        self._shutdown_called = True
        if self._executor is not None:
            self._executor.shutdown(wait=wait, cancel_futures=self._cancel_event.is_set() or not wait)
            self._executor = None

    def cancel(self) -> None:
        """Request that no further validation starts and running ones stop early."""
        if not self._cancel_event.is_set():
            logger.debug('Cancelling outstanding validations')
        self._cancel_event.set()

    def submit(self, patch: Patch) -> Future[ValidationResult]:
        """Submit one patch for validation.

        Args:
            patch: The patch to validate.

        Returns:
            Future that will contain the ValidationResult when complete.

        Raises:
            RuntimeError: If the pool is not active (not in context).
        """
        if self._executor is None:
            msg = 'ValidationPool is not active. Use as context manager.'
            raise RuntimeError(msg)
        return self._executor.submit(self._validator.validate, patch, self._cancel_event)

    def validate_all(self, patches: Iterable[Patch], *, stop_on_plausible: bool = True) -> Iterator[ValidationResult]:
        """Validate a stream of patches, yielding results as they complete.

        Results completing together are yielded in generation order. Futures
        cancelled before they started yield nothing; validations interrupted
        while running yield a CANCELLED result.

        Args:
            patches: The patch stream, consumed lazily.
            stop_on_plausible: Cancel everything outstanding once a plausible
                result is seen.

        Yields:
            ValidationResults in completion order.
        """
        stream = iter(patches)
        in_flight: dict[Future[ValidationResult], Patch] = {}
        exhausted = False

        def refill() -> None:
            nonlocal exhausted
            while not exhausted and len(in_flight) < self._window and not self._cancel_event.is_set():
                patch = next(stream, None)
                if patch is None:
                    exhausted = True
                    return
                in_flight[self.submit(patch)] = patch

        try:
            refill()
            while in_flight:
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda f: in_flight[f].sequence):
                    del in_flight[future]
                    if future.cancelled():
                        continue
                    result = future.result()
                    yield result
                    if stop_on_plausible and result.is_plausible:
                        self.cancel()
                if self._cancel_event.is_set():
                    for future in in_flight:
                        future.cancel()
                refill()
        finally:
            if in_flight:
                self.cancel()
                for future in in_flight:
                    future.cancel()
