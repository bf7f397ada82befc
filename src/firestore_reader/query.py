from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
import math
from typing import TYPE_CHECKING, Any

from firestore_reader.errors import MalformedResponseError
from firestore_reader.values import unwrap_document_fields, wrap_value

if TYPE_CHECKING:
    from firestore_reader.request import Request


LOGGER = logging.getLogger(__name__)

NAME_FIELD = "__name__"

FIELD_OPERATORS = {
    "==": "EQUAL",
    "===": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "contains": "ARRAY_CONTAINS",
    "array-contains": "ARRAY_CONTAINS",
    "containsany": "ARRAY_CONTAINS_ANY",
    "array-contains-any": "ARRAY_CONTAINS_ANY",
    "in": "IN",
    "not-in": "NOT_IN",
}

DIRECTIONS = {
    "asc": "ASCENDING",
    "ascending": "ASCENDING",
    "desc": "DESCENDING",
    "descending": "DESCENDING",
}


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def build_filter(field_path: str, operator: str, value: Any) -> dict[str, Any]:
    """Build one ``where`` clause.

    ``None`` and NaN operands compared with ``==``/``!=`` become unary filters, since
    the service rejects them as field filter values.
    """

    path = field_path.strip()
    if not path:
        raise ValueError("field path is required")
    op = operator.strip().lower()
    if op not in FIELD_OPERATORS:
        raise ValueError(f"Unsupported query operator: {operator}")

    if value is None or _is_nan(value):
        if FIELD_OPERATORS[op] == "EQUAL":
            unary = "IS_NULL" if value is None else "IS_NAN"
        elif FIELD_OPERATORS[op] == "NOT_EQUAL":
            unary = "IS_NOT_NULL" if value is None else "IS_NOT_NAN"
        else:
            raise ValueError(f"Operator {operator} cannot compare against {value!r}")
        return {"unaryFilter": {"field": {"fieldPath": path}, "op": unary}}

    return {
        "fieldFilter": {
            "field": {"fieldPath": path},
            "op": FIELD_OPERATORS[op],
            "value": wrap_value(value),
        }
    }


@dataclass(frozen=True)
class FirestoreQuery:
    """Structured query builder.

    Every clause method returns a new query. A query obtained from
    ``firestore_reader.reader.query`` carries the scope document and request it runs
    against, so ``execute()`` issues exactly one ``runQuery`` POST.
    """

    collection_id: str
    scope_root: str = ""
    request: "Request | None" = field(default=None, compare=False, repr=False)
    projection: tuple[str, ...] | None = None
    filters: tuple[dict[str, Any], ...] = ()
    orders: tuple[dict[str, Any], ...] = ()
    offset_value: int | None = None
    limit_value: int | None = None

    def select(self, *field_paths: str) -> "FirestoreQuery":
        paths = tuple(path.strip() for path in field_paths if path and path.strip())
        if not paths:
            paths = (NAME_FIELD,)
        current = self.projection or ()
        return replace(self, projection=current + tuple(path for path in paths if path not in current))

    def where(self, field_path: str, operator: str, value: Any = None) -> "FirestoreQuery":
        return replace(self, filters=self.filters + (build_filter(field_path, operator, value),))

    def order_by(self, field_path: str, direction: str = "asc") -> "FirestoreQuery":
        normalized = DIRECTIONS.get(direction.strip().lower())
        if normalized is None:
            raise ValueError(f"Unsupported order direction: {direction}")
        order = {"field": {"fieldPath": field_path.strip()}, "direction": normalized}
        return replace(self, orders=self.orders + (order,))

    def offset(self, count: int) -> "FirestoreQuery":
        if count < 0:
            raise ValueError("offset must be >= 0")
        return replace(self, offset_value=count)

    def limit(self, count: int) -> "FirestoreQuery":
        if count < 0:
            raise ValueError("limit must be >= 0")
        return replace(self, limit_value=count)

    def range(self, start: int, end: int) -> "FirestoreQuery":
        if end < start:
            raise ValueError("range end must be >= start")
        return self.offset(start).limit(end - start)

    def to_structured_query(self) -> dict[str, Any]:
        query: dict[str, Any] = {"from": [{"collectionId": self.collection_id}]}
        if self.projection is not None:
            query["select"] = {"fields": [{"fieldPath": path} for path in self.projection]}
        if len(self.filters) == 1:
            query["where"] = self.filters[0]
        elif self.filters:
            query["where"] = {"compositeFilter": {"op": "AND", "filters": list(self.filters)}}
        if self.orders:
            query["orderBy"] = list(self.orders)
        if self.offset_value is not None:
            query["offset"] = self.offset_value
        if self.limit_value is not None:
            query["limit"] = self.limit_value
        return query

    def fetch_raw(self) -> list[dict[str, Any]]:
        """Run the query and return the matching documents still in wire format."""

        if self.request is None:
            raise RuntimeError("query is not bound to a request")
        response = self.request.post(self.scope_root or None, {"structuredQuery": self.to_structured_query()})
        if not isinstance(response, list):
            raise MalformedResponseError(operation="runQuery", response=response)
        documents = [item["document"] for item in response if item.get("document")]
        LOGGER.debug(
            "runQuery: scope=%s collection=%s items=%s documents=%s",
            self.scope_root or "(root)",
            self.collection_id,
            len(response),
            len(documents),
        )
        return documents

    def execute(self) -> list[dict[str, Any]]:
        return [unwrap_document_fields(document) for document in self.fetch_raw()]
