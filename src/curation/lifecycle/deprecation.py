"""Deprecation ledger and replacement chains.

An approved item is never edited. It is retired by a deprecation record that
may point at a replacement, which may itself be deprecated, and so on.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from src.constants import REPLACEMENT_CHAIN_MAX_DEPTH
from src.curation.errors import DeprecationError
from src.curation.models.lifecycle import DeprecationParams, DeprecationRecord

logger = logging.getLogger(__name__)


class DeprecationRepository(ABC):
    @abstractmethod
    async def create_deprecation(self, params: DeprecationParams) -> DeprecationRecord:
        pass

    @abstractmethod
    async def is_deprecated(self, item_id: str) -> bool:
        pass

    @abstractmethod
    async def get_deprecation(self, item_id: str) -> Optional[DeprecationRecord]:
        pass

    @abstractmethod
    async def get_replacement(self, item_id: str) -> Optional[str]:
        pass


async def deprecate_item(
    repository: DeprecationRepository, params: DeprecationParams
) -> DeprecationRecord:
    """Deprecate an item once.

    Raises:
        DeprecationError: If the item is already deprecated or would replace itself
    """
    if params.replacement_id == params.item_id:
        raise DeprecationError(f"Item {params.item_id} cannot replace itself")
    if await repository.is_deprecated(params.item_id):
        raise DeprecationError(f"Item {params.item_id} is already deprecated")

    record = await repository.create_deprecation(params)
    logger.info(
        f"Deprecated {params.item_type}:{params.item_id}"
        + (f" (replaced by {params.replacement_id})" if params.replacement_id else ""),
        extra={"operator_id": params.operator_id, "reason": params.reason},
    )
    return record


async def get_replacement_chain(
    repository: DeprecationRepository,
    item_id: str,
    max_depth: int = REPLACEMENT_CHAIN_MAX_DEPTH,
) -> List[str]:
    """Follow replacement pointers starting at ``item_id``.

    Stops at a missing link, at an id already in the chain, or after
    ``max_depth`` hops. The first element is always ``item_id``.
    """
    chain = [item_id]
    seen = {item_id}
    current_id: Optional[str] = item_id
    depth = 0

    while current_id and depth < max_depth:
        replacement = await repository.get_replacement(current_id)
        if not replacement or replacement in seen:
            break
        chain.append(replacement)
        seen.add(replacement)
        current_id = replacement
        depth += 1

    return chain


async def get_active_replacement(repository: DeprecationRepository, item_id: str) -> str:
    chain = await get_replacement_chain(repository, item_id)
    return chain[-1]
