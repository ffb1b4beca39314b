"""Pure Python in-memory database for unit testing."""

import copy
import json
from datetime import datetime
from typing import Any


def _to_stored(value: Any) -> Any:
    """Mimic what SQLite hands back: ISO strings for datetimes, JSON text for lists and dicts."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        return str(value)
    return value


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (2, "")
    if isinstance(value, int | float) or (isinstance(value, str) and value.isdigit()):
        return (0, float(value))
    return (1, str(value))


class InMemoryDBClient:
    """Pure Python in-memory database for unit testing.

    Mirrors the `missionboard.core.db_client` function signatures, raising KeyError for
    missing records and RuntimeError for storage failures. Operation names listed in
    `failing_operations` raise RuntimeError to simulate an unavailable database.
    """

    def __init__(self):
        """Initialize empty in-memory database."""
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._id_counter = 1
        self.failing_operations: set[str] = set()

    def _check_failure(self, operation: str) -> None:
        if operation in self.failing_operations:
            raise RuntimeError(f"Simulated storage failure in {operation}")

    def _get(self, collection: str, record_id: str) -> dict[str, Any]:
        records = self._collections.get(collection, {})
        if str(record_id) not in records:
            raise KeyError(f"Record not found in {collection}: {record_id}")
        return records[str(record_id)]

    async def create_record(self, *, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new record and return it with its assigned string id."""
        self._check_failure("create_record")
        record_id = str(self._id_counter)
        self._id_counter += 1

        record = {"id": record_id, **{key: _to_stored(value) for key, value in data.items()}}
        self._collections.setdefault(collection, {})[record_id] = record
        return copy.deepcopy(record)

    async def get_record(self, *, collection: str, record_id: str) -> dict[str, Any]:
        """Get a record by ID, raising KeyError if not found."""
        self._check_failure("get_record")
        return copy.deepcopy(self._get(collection, record_id))

    async def update_record(self, *, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update an existing record, raising KeyError if not found."""
        self._check_failure("update_record")
        record = self._get(collection, record_id)
        record.update({key: _to_stored(value) for key, value in data.items()})
        return copy.deepcopy(record)

    async def compare_and_update_record(
        self,
        *,
        collection: str,
        record_id: str,
        expected: dict[str, Any],
        data: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Update only if the record still matches `expected`; None otherwise."""
        self._check_failure("compare_and_update_record")
        try:
            record = self._get(collection, record_id)
        except KeyError:
            return None

        for column, value in expected.items():
            current = record.get(column)
            if value is None:
                if current is not None:
                    return None
            elif current is None or str(current) != str(_to_stored(value)):
                return None

        record.update({key: _to_stored(value) for key, value in data.items()})
        return copy.deepcopy(record)

    async def delete_record(self, *, collection: str, record_id: str) -> None:
        """Delete a record, raising KeyError if not found."""
        self._check_failure("delete_record")
        self._get(collection, record_id)
        del self._collections[collection][str(record_id)]

    async def list_records(
        self,
        *,
        collection: str,
        page: int = 1,
        per_page: int = 50,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List records with optional filtering, sorting and pagination."""
        self._check_failure("list_records")
        records = list(self._collections.get(collection, {}).values())

        if filter_query:
            records = [r for r in records if self._parse_filter(filter_query, r)]
        if sort:
            records = self._apply_sort(records, sort)

        start_idx = (page - 1) * per_page
        return [copy.deepcopy(r) for r in records[start_idx : start_idx + per_page]]

    async def get_first_record(self, *, collection: str, filter_query: str) -> dict[str, Any] | None:
        """Get the first matching record or None."""
        records = await self.list_records(collection=collection, filter_query=filter_query, per_page=1)
        return records[0] if records else None

    def records(self, collection: str) -> list[dict[str, Any]]:
        """Direct view of a collection for assertions."""
        return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    def _parse_filter(self, filter_str: str, record: dict[str, Any]) -> bool:
        """Evaluate `field = "value"`, `field != "value"`, `field ~ "value"` joined by &&."""
        if "&&" in filter_str:
            return all(self._parse_filter(cond.strip(), record) for cond in filter_str.split("&&"))

        for operator in ("!=", "~", "="):
            if operator in filter_str:
                field, raw = filter_str.split(operator, 1)
                field = field.strip()
                raw = raw.strip()
                value = json.loads(raw) if raw.startswith('"') else raw.strip("'")
                current = record.get(field)
                if operator == "~":
                    return value.lower() in str(current or "").lower()
                matches = current is not None and str(current) == value
                return not matches if operator == "!=" else matches

        raise RuntimeError(f"Invalid filter syntax (no operator found): {filter_str}")

    def _apply_sort(self, records: list[dict], sort: str) -> list[dict]:
        """Sort records by `[+-]field`."""
        reverse = sort.startswith("-")
        field = sort.lstrip("+-")
        return sorted(records, key=lambda r: _sort_key(r.get(field)), reverse=reverse)
