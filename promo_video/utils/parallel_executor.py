"""Parallel Executor - bounded thread-pool execution for independent render tasks."""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Optional

from promo_video.core.config import Settings


class ParallelExecutor:
    """Runs independent blocking tasks concurrently, keeping results in task order."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize parallel executor.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.max_parallel_api_calls = max(1, settings.max_parallel_api_calls)

    def execute_batch(
        self,
        tasks: list[Callable[[], Any]],
        task_names: Optional[list[str]] = None,
        max_workers: Optional[int] = None,
    ) -> list[tuple[Any, Optional[Exception]]]:
        """
        Execute tasks in parallel with controlled concurrency.

        Args:
            tasks: Zero-argument callables
            task_names: Optional names for logging
            max_workers: Maximum number of parallel workers (defaults to number of tasks)

        Returns:
            One (result, exception) tuple per task, positionally aligned with ``tasks``
        """
        if not tasks:
            return []

        names = [
            task_names[i] if task_names and i < len(task_names) else f"task_{i + 1}"
            for i in range(len(tasks))
        ]
        max_workers = max(1, min(max_workers or len(tasks), len(tasks)))

        if max_workers == 1:
            return [self._run(task, name) for task, name in zip(tasks, names)]

        start_time = time.time()
        results: list[tuple[Any, Optional[Exception]]] = [(None, None)] * len(tasks)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {executor.submit(self._run, task, name): i for i, (task, name) in enumerate(zip(tasks, names))}
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()

        successful = sum(1 for _, error in results if error is None)
        self.logger.debug(
            f"Batch complete: {successful}/{len(tasks)} successful in {time.time() - start_time:.2f}s "
            f"({max_workers} workers)"
        )
        return results

    def execute_api_calls(
        self,
        tasks: list[Callable[[], Any]],
        task_names: Optional[list[str]] = None,
    ) -> list[tuple[Any, Optional[Exception]]]:
        """Execute external API calls bounded by ``max_parallel_api_calls``."""
        return self.execute_batch(tasks, task_names, max_workers=self.max_parallel_api_calls)

    def _run(self, task: Callable[[], Any], name: str) -> tuple[Any, Optional[Exception]]:
        start_time = time.time()
        try:
            result = task()
        except Exception as e:
            self.logger.error(f"{name} failed after {time.time() - start_time:.2f}s: {e}")
            return None, e
        self.logger.debug(f"{name} completed in {time.time() - start_time:.2f}s")
        return result, None
