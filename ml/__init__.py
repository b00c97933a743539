"""
Computation Package for Household Electricity Optimization

This package holds the pure computation core:

Optimization:
- Per-task start-time search over TOU and BLOCK tariffs
- Money versus carbon blended objective with rooftop solar offsets
- Justification trails for every recommendation

Billing:
- Monthly bill previews and end-of-month projections
- Month-to-date aggregation and solar export settlement
- Block-crossing warnings for tiered tariffs

The core performs no I/O; callers resolve configuration first.
"""

__version__ = "1.0.0"

from .optimization import (
    ApplianceScheduler,
    BillingEngine,
    BlockCrossingAdvisor,
    SchedulingError,
    optimize,
)

__all__ = [
    "ApplianceScheduler",
    "BillingEngine",
    "BlockCrossingAdvisor",
    "SchedulingError",
    "optimize",
]
