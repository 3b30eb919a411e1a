# ovn/core/models/lookup_query.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import Field, ValidationError, field_validator

from ovn.core.models.immutable_model import ImmutableModel
from ovn.core.models.record_query import FieldCondition, Operator, SortOrder

logger = logging.getLogger(__name__)

class LookupQueryError(ValueError):
    """Error del llamador: parámetros de consulta inválidos (se rechaza antes de tocar el almacenamiento)."""
    pass


class LookupQuestion(ImmutableModel):
    service: str
    query: Optional[Any] = None


class PaginatedQuery(ImmutableModel):
    limit: Optional[int] = None
    skip: int = 0
    sort_order: SortOrder = Field(SortOrder.DESC, alias="sortOrder")
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")

    @field_validator("limit")
    @classmethod
    def _limit_non_negative(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError("limit must be a non-negative number")
        return value

    @field_validator("skip")
    @classmethod
    def _skip_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("skip must be a non-negative number")
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def date_conditions(self) -> List[FieldCondition]:
        conditions: List[FieldCondition] = []
        if self.start_date is not None:
            conditions.append(FieldCondition("createdAt", Operator.GTE, self.start_date))
        if self.end_date is not None:
            conditions.append(FieldCondition("createdAt", Operator.LTE, self.end_date))
        return conditions

    def page(self) -> Dict[str, Any]:
        return {"limit": self.limit, "skip": self.skip, "sort_order": self.sort_order}


Q = TypeVar("Q", bound=ImmutableModel)

def parse_query(model_cls: Type[Q], query: Any) -> Q:
    """Valida la consulta con el modelo pydantic; cualquier fallo es un LookupQueryError."""
    if not isinstance(query, dict):
        raise LookupQueryError("A valid query must be provided!")
    try:
        return model_cls.model_validate(query)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise LookupQueryError(f"Consulta inválida ({problems})")
