"""Structured filter predicates for the alarm event store.

Predicates are small pydantic models instead of SQL fragments, so values are
always bound as parameters::

    store.filter_by(
        any_of(where("end_at", "is_null"), where("snooze_times", "ge", 3)),
        order_by("start_at", descending=True),
    )

Plain mappings with the same shape are accepted as well, e.g.
``{"kind": "condition", "field": "event_id", "op": "eq", "value": "abc"}``.
"""
import operator
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Callable, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from .errors import QuerySyntaxError

FIELD_TYPES: dict[str, type] = {
    "event_id": str,
    "user_id": str,
    "user_name": str,
    "start_at": datetime,
    "end_at": datetime,
    "snooze_times": int,
    "sync_at": datetime,
    "deleted_at": datetime,
}
"""Queryable alarm event fields and the Python type their values must have."""


class Operator(str, Enum):
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"


NULL_OPERATORS = {Operator.IS_NULL, Operator.IS_NOT_NULL}

_COMPARATORS: dict[Operator, Callable[[Any, Any], Any]] = {
    Operator.EQ: operator.eq,
    Operator.NE: operator.ne,
    Operator.LT: operator.lt,
    Operator.LE: operator.le,
    Operator.GT: operator.gt,
    Operator.GE: operator.ge,
}


def _check_field(name: str) -> str:
    if name not in FIELD_TYPES:
        raise ValueError(f"Unknown field {name!r}, expected one of {sorted(FIELD_TYPES)}")
    return name


class Condition(BaseModel):
    """A single ``field <op> value`` comparison."""

    kind: Literal["condition"] = "condition"
    field: str
    op: Operator
    value: Any = None

    @field_validator("field")
    @classmethod
    def check_field(cls, name: str) -> str:
        return _check_field(name)

    @model_validator(mode="after")
    def check_value(self) -> "Condition":
        if self.op in NULL_OPERATORS:
            if self.value is not None:
                raise ValueError(f"Operator {self.op.value} takes no value")
            return self
        if self.value is None:
            raise ValueError(
                f"Operator {self.op.value} needs a value, use is_null to match missing values"
            )

        expected = FIELD_TYPES[self.field]
        if expected is datetime and isinstance(self.value, str):
            try:
                self.value = datetime.fromisoformat(self.value)
            except ValueError as exc:
                raise ValueError(f"Field {self.field} expects an ISO datetime") from exc
        if isinstance(self.value, bool) or not isinstance(self.value, expected):
            raise ValueError(
                f"Field {self.field} expects {expected.__name__}, got {type(self.value).__name__}"
            )
        return self


class AllOf(BaseModel):
    """Logical AND. An empty list matches every record."""

    kind: Literal["all"] = "all"
    conditions: list["Predicate"] = Field(default_factory=list)


class AnyOf(BaseModel):
    """Logical OR. Must hold at least one condition."""

    kind: Literal["any"] = "any"
    conditions: list["Predicate"]

    @field_validator("conditions")
    @classmethod
    def check_not_empty(cls, conditions: list) -> list:
        if not conditions:
            raise ValueError("any_of needs at least one condition")
        return conditions


def _predicate_kind(value) -> Optional[str]:
    # mappings without a kind are single conditions
    if isinstance(value, Mapping):
        return value.get("kind", "condition")
    return getattr(value, "kind", None)


Predicate = Annotated[
    Union[
        Annotated[Condition, Tag("condition")],
        Annotated[AllOf, Tag("all")],
        Annotated[AnyOf, Tag("any")],
    ],
    Discriminator(_predicate_kind),
]

AllOf.model_rebuild()
AnyOf.model_rebuild()


class OrderBy(BaseModel):
    field: str = "start_at"
    descending: bool = True

    @field_validator("field")
    @classmethod
    def check_field(cls, name: str) -> str:
        return _check_field(name)


_predicate_adapter = TypeAdapter(Predicate)


def _syntax_error(exc: ValidationError) -> QuerySyntaxError:
    messages = "; ".join(error["msg"] for error in exc.errors())
    return QuerySyntaxError(f"Malformed query: {messages}")


def where(field: str, op: Union[str, Operator], value: Any = None) -> Condition:
    try:
        return Condition(field=field, op=op, value=value)
    except ValidationError as exc:
        raise _syntax_error(exc) from exc


def all_of(*conditions) -> AllOf:
    try:
        return AllOf(conditions=[parse_predicate(c) for c in conditions])
    except ValidationError as exc:
        raise _syntax_error(exc) from exc


def any_of(*conditions) -> AnyOf:
    try:
        return AnyOf(conditions=[parse_predicate(c) for c in conditions])
    except ValidationError as exc:
        raise _syntax_error(exc) from exc


def order_by(field: str, descending: bool = True) -> OrderBy:
    try:
        return OrderBy(field=field, descending=descending)
    except ValidationError as exc:
        raise _syntax_error(exc) from exc


def parse_predicate(predicate) -> Optional[Union[Condition, AllOf, AnyOf]]:
    """Validates a predicate given as a model, a mapping or None."""
    if predicate is None or isinstance(predicate, (Condition, AllOf, AnyOf)):
        return predicate
    if isinstance(predicate, str):
        raise QuerySyntaxError("Raw SQL predicates are not supported")
    if isinstance(predicate, Mapping):
        try:
            return _predicate_adapter.validate_python(dict(predicate))
        except ValidationError as exc:
            raise _syntax_error(exc) from exc
    raise QuerySyntaxError(f"Unsupported predicate type {type(predicate).__name__}")


def parse_order_by(order) -> OrderBy:
    if order is None:
        return OrderBy()
    if isinstance(order, OrderBy):
        return order
    if isinstance(order, Mapping):
        try:
            return OrderBy(**order)
        except ValidationError as exc:
            raise _syntax_error(exc) from exc
    raise QuerySyntaxError(f"Unsupported ordering type {type(order).__name__}")


def compile_predicate(predicate, orm_class) -> ColumnElement[bool]:
    """Translates a validated predicate into a SQLAlchemy boolean clause."""
    if predicate is None:
        return true()
    if isinstance(predicate, Condition):
        column = getattr(orm_class, predicate.field)
        if predicate.op is Operator.IS_NULL:
            return column.is_(None)
        if predicate.op is Operator.IS_NOT_NULL:
            return column.is_not(None)
        return _COMPARATORS[predicate.op](column, predicate.value)
    if isinstance(predicate, AllOf):
        if not predicate.conditions:
            return true()
        return and_(*(compile_predicate(c, orm_class) for c in predicate.conditions))
    if isinstance(predicate, AnyOf):
        return or_(*(compile_predicate(c, orm_class) for c in predicate.conditions))
    raise QuerySyntaxError(f"Unsupported predicate type {type(predicate).__name__}")


def compile_order_by(order: OrderBy, orm_class) -> list:
    column = getattr(orm_class, order.field)
    primary = column.desc() if order.descending else column.asc()
    # event_id breaks ties so results are stable
    return [primary, orm_class.event_id.asc()]
