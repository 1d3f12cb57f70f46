"""Storage contract the pipeline needs beyond transitions."""

from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple

from src.curation.lifecycle.transition_service import TransitionRepository
from src.curation.models.enums import LifecycleState


class ItemStore(TransitionRepository):
    """Transition repository that can also create, read, edit and drop items."""

    @abstractmethod
    async def add_draft(
        self, item_id: str, item_type: str, payload: Dict[str, Any], source: str = "manual"
    ) -> None:
        pass

    @abstractmethod
    async def find_item(
        self, item_id: str, item_type: str
    ) -> Optional[Tuple[LifecycleState, Dict[str, Any]]]:
        """Return ``(state, row)`` for the stage currently holding the item."""
        pass

    @abstractmethod
    async def update_payload(self, item_id: str, item_type: str, payload: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete_item(self, item_id: str, item_type: str) -> None:
        pass
