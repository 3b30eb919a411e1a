# ovn/core/models/record_query.py
'''
Lenguaje de filtros del índice, independiente del backend.

    FieldCondition(path, operator, value): `path` es una ruta con puntos dentro del payload
    ('metadata.publisher') o una columna del registro (txid, outputIndex, createdAt, spendingTxid).
'''

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

COLUMN_FIELDS = frozenset({"txid", "outputIndex", "createdAt", "spendingTxid"})

class Operator(str, Enum):
    EQ = "eq"
    IN = "in"                # valor escalar dentro de una lista dada
    FUZZY = "fuzzy"          # caracteres en orden, sin mayúsculas (a.*b.*c)
    CONTAINS = "contains"    # subcadena, sin mayúsculas
    ANY_IN = "any_in"        # el campo es un array con algún elemento de la lista dada
    GTE = "gte"
    LTE = "lte"

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

class AnswerMode(str, Enum):
    REFERENCES = "references"   # lista de {txid, outputIndex}
    RECORD = "record"           # un único objeto estructurado ('freeform')


@dataclass(frozen=True)
class FieldCondition:
    path: str
    operator: Operator
    value: Any

    @property
    def is_column(self) -> bool:
        return self.path in COLUMN_FIELDS


@dataclass(frozen=True)
class RecordQuery:
    conditions: Tuple[FieldCondition, ...] = ()
    limit: Optional[int] = None
    skip: int = 0
    sort_order: SortOrder = SortOrder.DESC
    sort_field: str = "createdAt"
    answer_mode: AnswerMode = field(default=AnswerMode.REFERENCES)

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit debe ser un número no negativo.")
        if self.skip < 0:
            raise ValueError("skip debe ser un número no negativo.")

    @staticmethod
    def where(*conditions: FieldCondition, **options: Any) -> 'RecordQuery':
        return RecordQuery(conditions=tuple(conditions), **options)
