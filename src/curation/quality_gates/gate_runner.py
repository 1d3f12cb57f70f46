"""Runs a set of gates against one input.

Two modes:
- ``run_gates``: in list order, stopping at the first failure
- ``run_gates_by_tier``: tier by tier (FAST, DATABASE, EXTERNAL); gates in a
  tier run concurrently and all of their results are kept, but a later tier
  never runs after a failure in an earlier one
"""

import asyncio
import inspect
import logging
import time
from collections import defaultdict
from typing import Dict, List, Sequence

from src.curation.models.enums import GateTier
from src.curation.models.gate import GateInput, GateRunnerResult, QualityGateResult
from src.curation.quality_gates.base import QualityGate

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


async def run_gate(gate: QualityGate, gate_input: GateInput) -> QualityGateResult:
    """Run one gate, awaiting it if needed, and stamp its execution time."""
    start = time.perf_counter()
    result = gate.check(gate_input)
    if inspect.isawaitable(result):
        result = await result

    if not result.passed:
        logger.warning(
            f"Gate {result.gate_name} failed: {result.reason}",
            extra={"gate": result.gate_name, "details": result.details},
        )
    if result.execution_time_ms is None:
        result = result.model_copy(update={"execution_time_ms": _elapsed_ms(start)})
    return result


async def run_gates(gates: Sequence[QualityGate], gate_input: GateInput) -> GateRunnerResult:
    start = time.perf_counter()
    results: List[QualityGateResult] = []

    for gate in gates:
        result = await run_gate(gate, gate_input)
        results.append(result)
        if not result.passed:
            return GateRunnerResult(
                all_passed=False,
                results=results,
                failed_at=gate.name,
                execution_time_ms=_elapsed_ms(start),
            )

    return GateRunnerResult(all_passed=True, results=results, execution_time_ms=_elapsed_ms(start))


def group_by_tier(gates: Sequence[QualityGate]) -> Dict[GateTier, List[QualityGate]]:
    tiers: Dict[GateTier, List[QualityGate]] = defaultdict(list)
    for gate in gates:
        tiers[gate.tier].append(gate)
    return dict(tiers)


async def run_gates_by_tier(
    gates: Sequence[QualityGate], gate_input: GateInput
) -> GateRunnerResult:
    start = time.perf_counter()
    all_results: List[QualityGateResult] = []

    tiers = group_by_tier(gates)
    for tier in sorted(tiers):
        tier_results = await asyncio.gather(*(run_gate(gate, gate_input) for gate in tiers[tier]))
        all_results.extend(tier_results)

        failed = [r for r in tier_results if not r.passed]
        if failed:
            logger.info(
                f"Tier {GateTier(tier).name} failed ({len(failed)} gate(s)); skipping later tiers"
            )
            return GateRunnerResult(
                all_passed=False,
                results=all_results,
                failed_at=failed[0].gate_name,
                execution_time_ms=_elapsed_ms(start),
            )

    return GateRunnerResult(all_passed=True, results=all_results, execution_time_ms=_elapsed_ms(start))


def get_failed_gates(results: Sequence[QualityGateResult]) -> List[QualityGateResult]:
    return [r for r in results if not r.passed]


def get_passed_gates(results: Sequence[QualityGateResult]) -> List[QualityGateResult]:
    return [r for r in results if r.passed]
