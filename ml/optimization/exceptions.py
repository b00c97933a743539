"""
Scheduling and Billing Errors

Error taxonomy for the scheduling core. Configuration-shape errors are
raised eagerly when a model is built; per-task infeasibility is raised by
the optimizer for a single task and collected by the caller so the rest of
the batch can still be scheduled.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base exception for scheduling and billing errors"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvalidTariffConfig(SchedulingError):
    """Raised when TOU windows do not partition the day or block tiers are not ascending"""
    pass


class InvalidCarbonProfile(SchedulingError):
    """Raised when a carbon profile does not have 48 non-negative slots"""
    pass


class InfeasibleTask(SchedulingError):
    """Raised when a task's duration cannot fit inside its allowed window"""

    def __init__(self, task_id: str, message: Optional[str] = None):
        self.task_id = task_id
        super().__init__(message or f"Task '{task_id}' cannot fit its duration in its window")


class MalformedInput(SchedulingError):
    """Raised when a required field is missing or has an unusable value"""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Missing or invalid field '{field}'")
