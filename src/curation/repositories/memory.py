"""In-memory implementations of every repository contract.

Used by the CLI and the tests. Each repository keeps plain dicts and lists;
no method awaits between reading and writing, so each call is atomic under
a single event loop.
"""

import logging
from datetime import UTC, datetime, timedelta
from difflib import SequenceMatcher
from typing import Any, Callable, Dict, List, Optional, Tuple

from src.constants import GATE_RESULT_RETENTION_DAYS
from src.curation.errors import DeprecationError
from src.curation.lifecycle.approval_events import ApprovalEventRepository
from src.curation.lifecycle.deprecation import DeprecationRepository
from src.curation.lifecycle.immutability import ViolationRepository
from src.curation.lifecycle.transition_service import get_table_for_state
from src.curation.models.enums import ApprovalType, CEFRLevel, DataType, GateStatus, LifecycleState
from src.curation.models.gate import (
    GateResultRecord,
    PrerequisiteInfo,
    RecordResultParams,
    SimilarMatch,
)
from src.curation.models.lifecycle import (
    ApprovalEventRecord,
    ApprovalStats,
    CreateApprovalParams,
    DeprecationParams,
    DeprecationRecord,
    StateTransition,
    TransitionParams,
    ViolationParams,
    ViolationRecord,
)
from src.curation.pipeline.base import ItemStore
from src.curation.quality_gates.duplication_gate import DuplicationRepository
from src.curation.quality_gates.failure_recorder import FailureRecorderRepository
from src.curation.quality_gates.prerequisite_gate import PrerequisiteRepository
from src.curation.validators.schema import get_primary_text

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_DATA_TYPE_VALUES = frozenset(t.value for t in DataType)


def _utc_now() -> datetime:
    return datetime.now(UTC)


# ============================================================================
# Quality gate repositories
# ============================================================================


class InMemoryFailureRecorderRepository(FailureRecorderRepository):
    def __init__(self, clock: Clock = _utc_now):
        self.clock = clock
        self.records: List[GateResultRecord] = []

    def _entity_records(self, entity_type: str, entity_id: str) -> List[GateResultRecord]:
        return [
            r for r in self.records if r.entity_type == entity_type and r.entity_id == entity_id
        ]

    async def record_result(self, params: RecordResultParams) -> None:
        self.records.append(GateResultRecord(**params.model_dump(), created_at=self.clock()))

    async def get_latest_attempt_number(self, entity_type: str, entity_id: str) -> int:
        return max(
            (r.attempt_number for r in self._entity_records(entity_type, entity_id)), default=0
        )

    async def get_failure_count(self, entity_type: str, entity_id: str) -> int:
        return len(await self.get_entity_failures(entity_type, entity_id))

    async def get_entity_failures(
        self, entity_type: str, entity_id: str
    ) -> List[GateResultRecord]:
        failures = [
            r for r in self._entity_records(entity_type, entity_id) if r.status == GateStatus.FAILED
        ]
        return sorted(failures, key=lambda r: (r.attempt_number, r.created_at))

    async def get_entity_results(
        self, entity_type: str, entity_id: str, attempt_number: Optional[int] = None
    ) -> List[GateResultRecord]:
        return [
            r
            for r in self._entity_records(entity_type, entity_id)
            if attempt_number is None or r.attempt_number == attempt_number
        ]

    async def has_failed_on_latest_attempt(self, entity_type: str, entity_id: str) -> bool:
        latest = await self.get_latest_attempt_number(entity_type, entity_id)
        return any(
            r.attempt_number == latest and r.status == GateStatus.FAILED
            for r in self._entity_records(entity_type, entity_id)
        )

    async def clear_old_results(self, days_to_keep: int = GATE_RESULT_RETENTION_DAYS) -> int:
        cutoff = self.clock() - timedelta(days=days_to_keep)
        kept = [r for r in self.records if r.created_at >= cutoff]
        deleted = len(self.records) - len(kept)
        self.records = kept
        logger.info(f"Cleared {deleted} gate result(s) older than {days_to_keep} days")
        return deleted


class InMemoryDuplicationRepository(DuplicationRepository):
    """Approved texts per (language, content type), compared case-insensitively.

    Reads seeded entries plus, when a transition store is given, every item
    currently in its approved stores.
    """

    def __init__(
        self,
        store: Optional["InMemoryTransitionRepository"] = None,
        max_matches: int = 5,
    ):
        self.store = store
        self.max_matches = max_matches
        self.entries: List[Tuple[str, str, str, str]] = []

    def add_approved(self, item_id: str, text: str, language: str, content_type: str) -> None:
        self.entries.append((item_id, text, language.upper(), content_type))

    def _candidates(self, language: str, content_type: str) -> List[Tuple[str, str]]:
        candidates = [
            (item_id, text)
            for item_id, text, lang, ctype in self.entries
            if lang == language.upper() and ctype == content_type
        ]
        if self.store is not None and content_type in _DATA_TYPE_VALUES:
            for item_id, row in self.store.approved_items(content_type).items():
                payload = row["payload"]
                if str(payload.get("language", "")).upper() == language.upper():
                    candidates.append((item_id, get_primary_text(DataType(content_type), payload)))
        return candidates

    async def find_exact_match(
        self, text: str, language: str, content_type: str
    ) -> Optional[str]:
        needle = text.strip().casefold()
        for item_id, existing in self._candidates(language, content_type):
            if existing.strip().casefold() == needle:
                return item_id
        return None

    async def find_similar(
        self, text: str, language: str, content_type: str, threshold: float
    ) -> List[SimilarMatch]:
        needle = text.strip().casefold()
        matches = []
        for item_id, existing in self._candidates(language, content_type):
            ratio = SequenceMatcher(None, needle, existing.strip().casefold()).ratio()
            if ratio >= threshold:
                matches.append(SimilarMatch(id=item_id, text=existing, similarity=round(ratio, 4)))
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[: self.max_matches]


class InMemoryPrerequisiteRepository(PrerequisiteRepository):
    """Catalog of known items plus the prerequisite adjacency list.

    Seeded entries take precedence; with a transition store, approved items
    that declare a ``level`` are part of the catalog too.
    """

    def __init__(self, store: Optional["InMemoryTransitionRepository"] = None):
        self.store = store
        self.catalog: Dict[str, PrerequisiteInfo] = {}
        self.graph: Dict[str, List[str]] = {}
        self.lookups = 0

    def add_item(self, info: PrerequisiteInfo, prerequisites: Optional[List[str]] = None) -> None:
        self.catalog[info.id] = info
        self.graph[info.id] = list(prerequisites or [])

    def _approved_rows(self) -> Dict[str, Dict[str, Any]]:
        if self.store is None:
            return {}
        rows: Dict[str, Dict[str, Any]] = {}
        for data_type in DataType:
            rows.update(self.store.approved_items(data_type.value))
        return rows

    def _lookup(self, item_id: str) -> Optional[PrerequisiteInfo]:
        if item_id in self.catalog:
            return self.catalog[item_id]
        payload = self._approved_rows().get(item_id, {}).get("payload", {})
        if payload.get("level") in {level.value for level in CEFRLevel}:
            return PrerequisiteInfo(
                id=item_id, level=payload["level"], language=str(payload.get("language", ""))
            )
        return None

    async def find_prerequisites(self, ids: List[str]) -> List[PrerequisiteInfo]:
        found = (self._lookup(i) for i in dict.fromkeys(ids))
        return [info for info in found if info is not None]

    async def get_prerequisites_of(self, item_id: str) -> List[str]:
        self.lookups += 1
        if item_id in self.graph:
            return list(self.graph[item_id])
        payload = self._approved_rows().get(item_id, {}).get("payload", {})
        return list(payload.get("prerequisites", []))


# ============================================================================
# Lifecycle repositories
# ============================================================================


class InMemoryTransitionRepository(ItemStore):
    """Stage stores keyed by table name, plus the transition log.

    Items live in exactly one store at a time; a move pops the item from the
    source store before inserting it into the target store.
    """

    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.transitions: List[StateTransition] = []

    def _table(self, item_type: str, state: LifecycleState) -> Dict[str, Dict[str, Any]]:
        return self.tables.setdefault(get_table_for_state(item_type, state), {})

    def _require_item(self, item_id: str, item_type: str, state: LifecycleState) -> Dict[str, Any]:
        row = self._table(item_type, state).get(item_id)
        if row is None:
            raise LookupError(f"{state.value.title()} {item_id} not found")
        if row["item_type"] != item_type:
            raise ValueError(f"Item type mismatch: expected {item_type}, got {row['item_type']}")
        return row

    async def add_draft(
        self, item_id: str, item_type: str, payload: Dict[str, Any], source: str = "manual"
    ) -> None:
        self._table(item_type, LifecycleState.DRAFT)[item_id] = {
            "item_type": item_type,
            "payload": dict(payload),
            "source": source,
        }

    def _find(self, item_id: str, item_type: str) -> Optional[Tuple[LifecycleState, Dict[str, Any]]]:
        for state in LifecycleState:
            row = self._table(item_type, state).get(item_id)
            if row is not None and row["item_type"] == item_type:
                return state, row
        return None

    def approved_items(self, item_type: str) -> Dict[str, Dict[str, Any]]:
        return dict(self._table(item_type, LifecycleState.APPROVED))

    async def find_item(
        self, item_id: str, item_type: str
    ) -> Optional[Tuple[LifecycleState, Dict[str, Any]]]:
        return self._find(item_id, item_type)

    async def get_state(self, item_id: str, item_type: str) -> Optional[LifecycleState]:
        found = self._find(item_id, item_type)
        return found[0] if found else None

    async def update_payload(self, item_id: str, item_type: str, payload: Dict[str, Any]) -> None:
        found = self._find(item_id, item_type)
        if found is None:
            raise LookupError(f"Item {item_id} not found")
        found[1]["payload"] = dict(payload)

    async def delete_item(self, item_id: str, item_type: str) -> None:
        found = self._find(item_id, item_type)
        if found is None:
            raise LookupError(f"Item {item_id} not found")
        del self._table(item_type, found[0])[item_id]

    def get_transitions(self, item_id: str) -> List[StateTransition]:
        return [t for t in self.transitions if t.item_id == item_id]

    async def record_transition(self, params: TransitionParams) -> StateTransition:
        self._require_item(params.item_id, params.item_type, params.from_state)
        transition = StateTransition(**params.model_dump())
        self.transitions.append(transition)
        return transition

    async def move_item_to_state(
        self,
        item_id: str,
        item_type: str,
        from_state: LifecycleState,
        to_state: LifecycleState,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        row = self._require_item(item_id, item_type, from_state)
        del self._table(item_type, from_state)[item_id]

        moved = dict(row)
        if to_state == LifecycleState.VALIDATED:
            gate_results = (metadata or {}).get("gate_results")
            moved["validation_results"] = (
                {"passed": True, "gate_results": gate_results} if gate_results else {}
            )
        self._table(item_type, to_state)[item_id] = moved


class InMemoryApprovalEventRepository(ApprovalEventRepository):
    def __init__(self, clock: Clock = _utc_now):
        self.clock = clock
        self.events: List[ApprovalEventRecord] = []

    async def record_approval(self, params: CreateApprovalParams) -> ApprovalEventRecord:
        event = ApprovalEventRecord(**params.model_dump(), created_at=self.clock())
        self.events.append(event)
        return event

    async def get_approval_event(self, item_id: str) -> Optional[ApprovalEventRecord]:
        for event in reversed(self.events):
            if event.item_id == item_id:
                return event
        return None

    async def get_approvals_by_operator(
        self, operator_id: str, limit: int = 50
    ) -> List[ApprovalEventRecord]:
        return [e for e in reversed(self.events) if e.operator_id == operator_id][:limit]

    async def get_approvals_by_type(
        self, item_type: str, limit: int = 50
    ) -> List[ApprovalEventRecord]:
        return [e for e in reversed(self.events) if e.item_type == item_type][:limit]

    async def get_approval_stats(self) -> ApprovalStats:
        stats = ApprovalStats(total=len(self.events))
        for event in self.events:
            if event.approval_type == ApprovalType.MANUAL:
                stats.manual += 1
            else:
                stats.automatic += 1
            stats.by_type[event.item_type] = stats.by_type.get(event.item_type, 0) + 1
        return stats


class InMemoryDeprecationRepository(DeprecationRepository):
    def __init__(self, clock: Clock = _utc_now):
        self.clock = clock
        self.records: Dict[str, DeprecationRecord] = {}

    async def create_deprecation(self, params: DeprecationParams) -> DeprecationRecord:
        if params.item_id in self.records:
            raise DeprecationError(f"Item {params.item_id} is already deprecated")
        record = DeprecationRecord(**params.model_dump(), deprecated_at=self.clock())
        self.records[params.item_id] = record
        return record

    async def is_deprecated(self, item_id: str) -> bool:
        return item_id in self.records

    async def get_deprecation(self, item_id: str) -> Optional[DeprecationRecord]:
        return self.records.get(item_id)

    async def get_replacement(self, item_id: str) -> Optional[str]:
        record = self.records.get(item_id)
        return record.replacement_id if record else None


class InMemoryViolationRepository(ViolationRepository):
    def __init__(self):
        self.violations: List[ViolationRecord] = []

    async def log_violation(self, params: ViolationParams) -> ViolationRecord:
        record = ViolationRecord(**params.model_dump())
        self.violations.append(record)
        return record

    async def get_violations(self, item_id: str) -> List[ViolationRecord]:
        return [v for v in self.violations if v.item_id == item_id]

    async def get_violation_count(self, item_id: str) -> int:
        return len(await self.get_violations(item_id))
