from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

from .model import Location


class LocationRepository(Protocol):
    def get_by_id(self, location_id: str) -> Optional[Location]:
        raise NotImplementedError

    def list(
        self,
        *,
        client_ids: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Location]:
        raise NotImplementedError

    def count(self, *, client_ids: Optional[Sequence[str]] = None, search: Optional[str] = None) -> int:
        raise NotImplementedError

    def insert(self, location: Location) -> Location:
        raise NotImplementedError

    def update(self, location_id: str, changes: Dict[str, Any], *, modified_by: str) -> Location:
        raise NotImplementedError

    def delete(self, location_id: str) -> None:
        raise NotImplementedError

    def count_employees(self, location_id: str) -> int:
        raise NotImplementedError
