"""
Translation of auth-framework filters into Triplit where clauses.

A generic filter is ``Where(field, value, operator)``. Each recognised
operator maps to exactly one Triplit triple ``(field, op, value)``:

    eq -> =          ne -> !=         in -> in
    gt -> >          gte -> >=        lt -> <          lte -> <=
    contains -> like %v%   starts_with -> like v%   ends_with -> like %v

Pattern values are built by plain concatenation: ``%`` and ``_`` inside the
value are not escaped and act as wildcards.

Unrecognised operators produce no clause and no error.
"""

import logging
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from triplit_auth.client.protocols import NativeFilter

logger = logging.getLogger(__name__)


class WhereOperator(str, Enum):
    """Operators of the generic filter model."""
    EQ = "eq"
    IN = "in"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"


class Where(BaseModel):
    """
    A single generic filter entry.

    ``operator`` is kept as a plain string so unknown operators can be
    represented (and dropped during translation). ``connector`` is carried
    for compatibility; all clauses are ANDed.
    """

    field: str
    value: Any = None
    operator: str = WhereOperator.EQ.value
    connector: str = "AND"

    model_config = ConfigDict(frozen=True)


_COMPARISONS = {
    WhereOperator.EQ.value: "=",
    WhereOperator.IN.value: "in",
    WhereOperator.NE.value: "!=",
    WhereOperator.GT.value: ">",
    WhereOperator.GTE.value: ">=",
    WhereOperator.LT.value: "<",
    WhereOperator.LTE.value: "<=",
}

WhereInput = Union[Where, Mapping[str, Any]]


def to_where(item: WhereInput) -> Where:
    """Coerce a mapping into a Where entry."""
    if isinstance(item, Where):
        return item
    return Where(**item)


def translate_where(item: Where) -> Optional[NativeFilter]:
    """Translate one entry, or return None for an unrecognised operator."""
    operator = item.operator.value if isinstance(item.operator, Enum) else item.operator

    if operator in _COMPARISONS:
        return (item.field, _COMPARISONS[operator], item.value)
    if operator == WhereOperator.CONTAINS.value:
        return (item.field, "like", f"%{item.value}%")
    if operator == WhereOperator.STARTS_WITH.value:
        return (item.field, "like", f"{item.value}%")
    if operator == WhereOperator.ENDS_WITH.value:
        return (item.field, "like", f"%{item.value}")
    return None


def parse_where(where: Optional[Iterable[WhereInput]] = None) -> List[NativeFilter]:
    """
    Translate generic filters into Triplit where clauses.

    Args:
        where: Generic filter entries (Where instances or mappings)

    Returns:
        Native triples in input order, skipping unrecognised operators
    """
    parsed: List[NativeFilter] = []

    for item in where or []:
        entry = to_where(item)
        clause = translate_where(entry)
        if clause is None:
            logger.warning(
                "Dropping filter with unsupported operator",
                extra={"field": entry.field, "operator": entry.operator},
            )
            continue
        parsed.append(clause)

    return parsed
