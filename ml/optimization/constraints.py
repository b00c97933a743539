"""
Start-Time Constraints for Appliance Scheduling

A task started at minute ``s`` runs over ``[s, s + duration)`` and must
finish by its latest time, so the feasible starts are

    earliest <= s <= latest - duration

sampled every ``granularity_minutes`` from ``earliest``. The last
feasible start is always a candidate even when it is off the grid.
Domains wider than ``max_candidates_per_task`` are coarsened by
multiplying the step, keeping the worst-case search cost bounded.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ml.optimization.appliance_models import OptimizationConfig, Task
from ml.optimization.exceptions import InfeasibleTask
from ml.optimization.timeline import format_hhmm

logger = logging.getLogger(__name__)


@dataclass
class StartDomain:
    """Candidate start minutes for one task.

    Attributes:
        starts: Ascending candidate start minutes
        step_minutes: Spacing used between candidates
        coarsened: True if the configured granularity was widened
    """

    starts: np.ndarray
    step_minutes: int
    coarsened: bool = False

    @property
    def first(self) -> int:
        return int(self.starts[0])

    @property
    def last(self) -> int:
        return int(self.starts[-1])

    @property
    def size(self) -> int:
        return int(self.starts.size)


def build_start_domain(task: Task, config: Optional[OptimizationConfig] = None) -> StartDomain:
    """Build the candidate start domain for a task.

    Args:
        task: Task to place
        config: Optimization configuration

    Returns:
        StartDomain with at least one candidate

    Raises:
        InfeasibleTask: If the duration does not fit the window
    """
    config = config or OptimizationConfig()
    first = task.earliest_minute
    last = task.latest_minute - task.duration_minutes

    if last < first:
        raise InfeasibleTask(
            task.id,
            f"Task '{task.id}' needs {task.duration_minutes} min but its window "
            f"{format_hhmm(task.earliest_minute)}-{format_hhmm(task.latest_minute)} "
            f"is only {task.window_minutes} min",
        )

    step = config.granularity_minutes
    span = last - first
    coarsened = False
    if span // step + 1 > config.max_candidates_per_task:
        # Leave room for the appended last start
        multiple = math.ceil(span / (step * max(1, config.max_candidates_per_task - 2)))
        step *= multiple
        coarsened = True
        logger.warning(
            "Coarsened search for task %s: step %d min over %d min span",
            task.id, step, span,
        )

    starts = np.arange(first, last + 1, step, dtype=np.int64)
    if starts[-1] != last:
        starts = np.append(starts, last)
    return StartDomain(starts=starts, step_minutes=step, coarsened=coarsened)


def check_placement(task: Task, start: int) -> None:
    """Verify that a chosen start keeps the run inside the task window.

    Raises:
        InfeasibleTask: If the run would start early or finish late
    """
    if start < task.earliest_minute:
        raise InfeasibleTask(
            task.id, f"Task '{task.id}' would start before {task.earliest}"
        )
    if start + task.duration_minutes > task.latest_minute:
        raise InfeasibleTask(
            task.id, f"Task '{task.id}' would finish after {task.latest}"
        )
