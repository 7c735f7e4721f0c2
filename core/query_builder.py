"""Builds filtered, relation-expanding REST query strings.

A query is bound to one table and carries a projection (the `select`
parameter) plus one exact-match predicate per column:

    RestQueryBuilder.from_table("enrollment") \\
        .select("*", expand("class", "*", expand("assignment", "*"))) \\
        .equals("class_id", class_id) \\
        .generate_query()

Predicates live in a column -> predicate mapping, so setting the same column
twice keeps only the last predicate. Repeated `select` calls are joined with
commas, which lets callers merge projection fragments.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Tuple, Union
from urllib.parse import quote

import config
from utils.error_handler import QueryBuildError


@dataclass(frozen=True)
class Relation:
    """An embedded relation in a projection, e.g. ``class(*,assignment(*))``."""
    name: str
    fields: Tuple[Union[str, "Relation"], ...]

    def render(self) -> str:
        return f"{self.name}({render_projection(self.fields)})"


ProjectionField = Union[str, Relation]


def _check_name(name: str, allow_wildcard: bool) -> None:
    if allow_wildcard and name == "*":
        return
    if not isinstance(name, str) or not name.isidentifier():
        raise QueryBuildError(f"Invalid column or relation name in projection: {name!r}")


def _validate_fields(fields: Iterable[ProjectionField]) -> None:
    seen_relations = set()
    for field in fields:
        if isinstance(field, Relation):
            if field.name in seen_relations:
                raise QueryBuildError(f"Relation '{field.name}' is expanded twice at the same level.")
            seen_relations.add(field.name)
        else:
            _check_name(field, allow_wildcard=True)


def expand(name: str, *fields: ProjectionField) -> Relation:
    """Returns a relation node embedding `name` with the given fields.

    Raises:
        QueryBuildError: If a name is not a valid identifier, the relation has
            no fields, or a nested relation is repeated.
    """
    _check_name(name, allow_wildcard=False)
    if not fields:
        raise QueryBuildError(f"Relation '{name}' must select at least one field.")
    _validate_fields(fields)
    return Relation(name, tuple(fields))


def render_projection(fields: Iterable[ProjectionField]) -> str:
    """Renders projection fields into the wire form, e.g. ``*,profile(*)``."""
    return ",".join(f.render() if isinstance(f, Relation) else f for f in fields)


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _encode(text: str) -> str:
    try:
        return quote(text, safe="")
    except UnicodeEncodeError as e:
        raise QueryBuildError(f"Cannot percent-encode query component {text!r}: {e}") from e


class RestQueryBuilder:
    """Accumulates the projection and predicates of a query against one table."""

    def __init__(self, table: str):
        if not table:
            raise QueryBuildError("A table name is required.")
        self.table = table
        self.path = f"{config.REST_PATH}{table}"
        self._params: Dict[str, str] = {}

    @classmethod
    def from_table(cls, table: str) -> "RestQueryBuilder":
        return cls(table)

    def select(self, *columns: ProjectionField) -> "RestQueryBuilder":
        """Appends projection fields; previous fragments are kept."""
        if not columns:
            raise QueryBuildError("select() needs at least one column or relation.")
        _validate_fields(columns)
        fragment = render_projection(columns)
        previous = self._params.get("select")
        self._params["select"] = f"{previous},{fragment}" if previous else fragment
        return self

    def equals(self, column: str, value: Any) -> "RestQueryBuilder":
        return self._predicate(column, "eq", value)

    def not_equals(self, column: str, value: Any) -> "RestQueryBuilder":
        return self._predicate(column, "neq", value)

    def _predicate(self, column: str, operator: str, value: Any) -> "RestQueryBuilder":
        if column == "select":
            raise QueryBuildError("'select' is reserved for the projection and cannot be filtered on.")
        if value is None:
            raise QueryBuildError(f"A value is required for the predicate on '{column}'.")
        self._params[column] = f"{operator}.{_render_value(value)}"
        return self

    @property
    def parameters(self) -> Dict[str, str]:
        """A copy of the unencoded query parameters."""
        return dict(self._params)

    def generate_query(self) -> str:
        """Returns ``/rest/v1/<table>?k=v&...`` with every key and value percent-encoded.

        Raises:
            QueryBuildError: If a key or value cannot be encoded.
        """
        if not self._params:
            return self.path
        query = "&".join(f"{_encode(k)}={_encode(v)}" for k, v in self._params.items())
        return f"{self.path}?{query}"

    def __repr__(self) -> str:
        return f"RestQueryBuilder(table={self.table!r}, params={self._params!r})"
