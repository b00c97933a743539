"""
Household Energy Scheduler - Command-Line Entry Point

Loads household configuration from a JSON file and runs the scheduler and
billing services against it. Results are printed as JSON on stdout; logs
go to stderr.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import structlog

from config.settings import settings
from ml.optimization.exceptions import SchedulingError
from models.responses import (
    BillPreviewResponse,
    BlockWarningResponse,
    ErrorResponse,
    MonthlyProjectionResponse,
    OptimizeResponse,
    SchedulerVariantsResponse,
)
from repositories.base import RepositoryError
from repositories.memory_repository import InMemoryConfigRepository
from services.billing_service import BillingService
from services.scheduler_service import SchedulerService


def configure_logging() -> None:
    """Configure structured logging to stderr."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )

    # Use simpler processors in production to reduce overhead
    if settings.is_production:
        log_processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ]
    else:
        log_processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ]

    structlog.configure(
        processors=log_processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="energy-scheduler",
        description="Plan appliance start times and estimate electricity bills",
    )
    parser.add_argument(
        "--household", required=True, help="JSON file with household configuration"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("optimize", "Recommend start times for every task"),
        ("variants", "Recommend start times at several money/carbon weights"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--user", required=True)
        cmd.add_argument("--date", required=True, help="Day to plan (YYYY-MM-DD)")
        cmd.add_argument("--alpha", type=float, default=1.0, help="Money weight in [0, 1]")
        if name == "optimize":
            cmd.add_argument(
                "--format", choices=["json", "text"], default="json", help="Output format"
            )

    preview = sub.add_parser("preview", help="Estimate a monthly bill")
    preview.add_argument("--user", required=True)
    preview.add_argument("--kwh", type=float, required=True, help="Assumed monthly import")
    preview.add_argument("--exported-kwh", type=float, default=0.0, help="Monthly solar export")

    project = sub.add_parser("project", help="Project end-of-month cost and emissions")
    project.add_argument("--user", required=True)
    project.add_argument("--as-of", required=True, help="Last metered day (YYYY-MM-DD)")

    block = sub.add_parser("blockwarning", help="Check whether a run crosses a tariff block")
    block.add_argument("--user", required=True)
    block.add_argument("--as-of", required=True, help="Last metered day (YYYY-MM-DD)")
    target = block.add_mutually_exclusive_group(required=True)
    target.add_argument("--task-kwh", type=float, help="Energy the run would draw")
    target.add_argument("--task-id", help="Stored task to check")

    return parser


async def run_command(args: argparse.Namespace) -> Any:
    """Execute one parsed command and return a JSON-ready payload or text."""
    repository = InMemoryConfigRepository.from_json_file(args.household)

    if args.command in ("optimize", "variants"):
        service = SchedulerService(repository, settings)
        if args.command == "optimize":
            result = await service.optimize(args.user, args.date, args.alpha)
            if args.format == "text":
                return result.summary()
            return OptimizeResponse.from_domain(result).model_dump(by_alias=True, mode="json")
        variants = await service.optimize_variants(args.user, args.date, args.alpha)
        return SchedulerVariantsResponse.from_domain(variants).model_dump(by_alias=True, mode="json")

    billing = BillingService(repository, settings)
    if args.command == "preview":
        preview = await billing.preview_bill(args.user, args.kwh, args.exported_kwh)
        return BillPreviewResponse.from_domain(preview).model_dump(
            by_alias=True, mode="json", exclude_none=True
        )
    if args.command == "project":
        projection, mtd = await billing.project_month(args.user, args.as_of)
        return MonthlyProjectionResponse.from_domain(
            projection, mtd.kwh, cycle_start=mtd.cycle_start, cycle_end=mtd.cycle_end
        ).model_dump(by_alias=True, mode="json")

    if args.task_id is not None:
        warning, mtd = await billing.check_task_block_crossing(args.user, args.task_id, args.as_of)
    else:
        warning, mtd = await billing.check_block_crossing(args.user, args.task_kwh, args.as_of)
    return BlockWarningResponse.from_domain(warning, mtd.kwh).model_dump(by_alias=True, mode="json")


def error_payload(exc: Exception) -> Dict[str, Any]:
    """Render a scheduling or repository error as a JSON body."""
    response = ErrorResponse(
        error=type(exc).__name__,
        message=getattr(exc, "message", str(exc)),
        field=getattr(exc, "field", None),
        task_id=getattr(exc, "task_id", None),
    )
    return response.model_dump(by_alias=True, exclude_none=True)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    logger.debug("command_started", command=args.command, environment=settings.environment)

    try:
        output = asyncio.run(run_command(args))
    except (SchedulingError, RepositoryError) as e:
        logger.warning("command_failed", command=args.command, error=str(e))
        print(json.dumps(error_payload(e), indent=2))
        return 1

    if isinstance(output, str):
        print(output)
    else:
        print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
