from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

from .model import Client


class ClientRepository(Protocol):
    def get_by_id(self, client_id: str) -> Optional[Client]:
        raise NotImplementedError

    def get_by_company_id(self, company_id: str) -> Optional[Client]:
        raise NotImplementedError

    def get_many(self, client_ids: Sequence[str]) -> Dict[str, Client]:
        raise NotImplementedError

    def ids_for_company_codes(self, company_codes: Sequence[str]) -> List[str]:
        raise NotImplementedError

    def list(
        self,
        *,
        client_ids: Optional[Sequence[str]] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Client]:
        raise NotImplementedError

    def count(self, *, client_ids: Optional[Sequence[str]] = None, search: Optional[str] = None) -> int:
        raise NotImplementedError

    def insert(self, client: Client) -> Client:
        raise NotImplementedError

    def update(self, client_id: str, changes: Dict[str, Any], *, modified_by: str) -> Client:
        raise NotImplementedError

    def delete(self, client_id: str) -> None:
        """Deletes the client together with everything it owns."""
        raise NotImplementedError

    def count_related(self, client_id: str) -> Dict[str, int]:
        """Counts of employees, cost centers, locations and assignments owned by the client."""
        raise NotImplementedError
