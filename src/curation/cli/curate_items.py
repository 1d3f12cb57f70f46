"""CLI for running draft items through the curation pipeline.

Usage:
    python -m src.curation.cli.curate_items \
        --input data/drafts.json \
        --output output/report.json \
        --manual-operator reviewer-1 \
        --tiered

Input is a JSON list of drafts:
    [{"id": "m-1", "type": "meaning", "source": "import", "data": {...}}, ...]

Optional top-level keys when the input is an object instead of a list:
- ``drafts``: the list above
- ``approved``: already-approved items seeded before the run (same shape)

Each item runs Draft -> Candidate -> Validated -> Approved as far as it can.
The report lists the state each item reached, its attempts, failed gates and
reasons.
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from tqdm import tqdm

from src.constants import AUTO_APPROVAL_ENABLED, LOG_FORMAT, LOG_LEVEL
from src.curation.errors import SchemaValidationError
from src.curation.models.enums import LifecycleState
from src.curation.pipeline import CurationPipeline, PipelineResult
from src.curation.quality_gates import RetryConfig, create_default_gates
from src.curation.repositories import (
    InMemoryApprovalEventRepository,
    InMemoryDeprecationRepository,
    InMemoryDuplicationRepository,
    InMemoryFailureRecorderRepository,
    InMemoryPrerequisiteRepository,
    InMemoryTransitionRepository,
    InMemoryViolationRepository,
)
from src.curation.utils.file_io import read_json, write_json
from src.curation.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

load_dotenv()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Validate and approve draft corpus items",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Auto-approve what can be auto-approved, leave rules/exercises for review
  python -m src.curation.cli.curate_items \\
      --input data/drafts.json --output output/report.json

  # Approve everything that validates as operator reviewer-1, no retry delays
  python -m src.curation.cli.curate_items \\
      --input data/drafts.json --output output/report.json \\
      --manual-operator reviewer-1 --no-delay
        """,
    )

    parser.add_argument("--input", required=True, type=Path, help="Drafts JSON file")
    parser.add_argument("--output", required=True, type=Path, help="Report JSON file")
    parser.add_argument(
        "--manual-operator",
        default=None,
        help="Operator ID used to manually approve validated items",
    )
    parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Skip the backoff delay between validation attempts",
    )
    parser.add_argument(
        "--tiered",
        action="store_true",
        help="Run gates tier by tier, in parallel within a tier",
    )
    parser.add_argument(
        "--no-auto-approval",
        action="store_true",
        help="Never approve without an operator",
    )
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--log-backend",
        default="stdlib",
        choices=["stdlib", "loguru"],
        help="Route logs through stdlib handlers or loguru sinks",
    )

    return parser.parse_args(argv)


def setup_logging(level: str, backend: str) -> None:
    if backend == "loguru":
        # Importing the helper installs the loguru intercept handler.
        from src.libs import logging_helper  # noqa: F401

        logging.getLogger().setLevel(level)
        return
    configure_logging(level=level, json_format=LOG_FORMAT == "json", console_output=True)


def load_input(path: Path) -> Dict[str, List[Dict[str, Any]]]:
    """Read drafts (and optional approved seed items) from ``path``.

    Raises:
        ValueError: If the file is neither a list nor an object with ``drafts``
    """
    data = read_json(path)
    if isinstance(data, list):
        return {"drafts": data, "approved": []}
    if isinstance(data, dict) and isinstance(data.get("drafts"), list):
        return {"drafts": data["drafts"], "approved": data.get("approved") or []}
    raise ValueError("Input must be a list of drafts or an object with a 'drafts' list")


def build_pipeline(
    tiered: bool = False,
    no_delay: bool = False,
    auto_approval_enabled: bool = AUTO_APPROVAL_ENABLED,
) -> CurationPipeline:
    """Wire an in-memory pipeline with the default gate set."""
    store = InMemoryTransitionRepository()
    gates = create_default_gates(
        duplication_repository=InMemoryDuplicationRepository(store=store),
        prerequisite_repository=InMemoryPrerequisiteRepository(store=store),
    )
    retry_config = RetryConfig(delays_ms=[0]) if no_delay else None
    return CurationPipeline(
        store=store,
        failure_repository=InMemoryFailureRecorderRepository(),
        approval_repository=InMemoryApprovalEventRepository(),
        deprecation_repository=InMemoryDeprecationRepository(),
        violation_repository=InMemoryViolationRepository(),
        gates=gates,
        retry_config=retry_config,
        tiered=tiered,
        auto_approval_enabled=auto_approval_enabled,
    )


async def seed_approved(pipeline: CurationPipeline, items: List[Dict[str, Any]]) -> None:
    """Run seed items through the pipeline with a system operator."""
    for item in items:
        try:
            item_id = await pipeline.submit_draft(
                item["type"], item.get("data") or {}, item.get("source", "seed"), item.get("id")
            )
        except (KeyError, SchemaValidationError) as e:
            logger.warning(f"Skipping malformed seed item {item.get('id')}: {e}")
            continue
        result = await pipeline.process_draft(item_id, item["type"], operator_id="seed")
        if not result.success:
            logger.warning(f"Seed item {item_id} did not reach approval: {result.state.value}")


async def run(
    pipeline: CurationPipeline,
    drafts: List[Dict[str, Any]],
    operator_id: Optional[str] = None,
) -> Tuple[List[PipelineResult], List[Dict[str, Any]]]:
    """Process every draft; malformed ones are rejected and the run goes on.

    Returns:
        Tuple of (pipeline results, rejected drafts with their errors)
    """
    results: List[PipelineResult] = []
    rejected: List[Dict[str, Any]] = []
    for index, item in enumerate(tqdm(drafts, desc="Curating", unit="item")):
        try:
            item_type = item["type"]
            item_id = await pipeline.submit_draft(
                item_type, item.get("data") or {}, item.get("source", "manual"), item.get("id")
            )
        except (KeyError, SchemaValidationError) as e:
            error = f"Missing field: {e}" if isinstance(e, KeyError) else str(e)
            logger.error(f"Rejected draft #{index} ({item.get('id')}): {error}")
            rejected.append(
                {"index": index, "id": item.get("id"), "type": item.get("type"), "error": error}
            )
            continue
        results.append(await pipeline.process_draft(item_id, item_type, operator_id))
    return results, rejected


def build_report(
    results: List[PipelineResult],
    elapsed_s: float,
    rejected: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    rejected = rejected or []
    by_state = {state.value: 0 for state in LifecycleState}
    for result in results:
        by_state[result.state.value] += 1
    return {
        "summary": {
            "total": len(results) + len(rejected),
            "rejected": len(rejected),
            "approved": sum(1 for r in results if r.success),
            "awaiting_review": sum(1 for r in results if r.awaiting_review),
            "by_state": by_state,
            "elapsed_s": round(elapsed_s, 3),
        },
        "items": [r.model_dump(mode="json") for r in results],
        "rejected": rejected,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_backend)

    logger.info("=" * 80)
    logger.info("Corpus Curation Pipeline")
    logger.info("=" * 80)
    logger.info(f"Input: {args.input}")
    logger.info(f"Output: {args.output}")
    logger.info(f"Tiered: {args.tiered}")
    if args.manual_operator:
        logger.info(f"Manual operator: {args.manual_operator}")
    logger.info("=" * 80)

    if not args.input.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        data = load_input(args.input)
    except ValueError as e:
        logger.error(f"Failed to load input: {e}")
        return 1

    pipeline = build_pipeline(
        tiered=args.tiered,
        no_delay=args.no_delay,
        auto_approval_enabled=AUTO_APPROVAL_ENABLED and not args.no_auto_approval,
    )

    async def _run_all() -> Tuple[List[PipelineResult], List[Dict[str, Any]]]:
        await seed_approved(pipeline, data["approved"])
        return await run(pipeline, data["drafts"], args.manual_operator)

    start_time = time.time()
    results, rejected = asyncio.run(_run_all())
    report = build_report(results, time.time() - start_time, rejected)
    write_json(report, args.output)

    summary = report["summary"]
    logger.info("=" * 80)
    logger.info(
        f"Processed {summary['total']} item(s): {summary['approved']} approved, "
        f"{summary['awaiting_review']} awaiting review, {summary['rejected']} rejected"
    )
    for state, count in summary["by_state"].items():
        logger.info(f"  {state}: {count}")
    logger.info("=" * 80)
    return 0


if __name__ == "__main__":
    sys.exit(main())
