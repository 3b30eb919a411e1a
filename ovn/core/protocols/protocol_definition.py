# ovn/core/protocols/protocol_definition.py
'''
class ProtocolDefinition:
    Descripción declarativa de un protocolo del overlay. Reúne todo lo que varía entre
    protocolos (política de admisión, colección, extracción de payload y planificación
    de consultas) para que el motor de admisión y el índice sean genéricos.

Helpers:
    paginated(page, *conditions, **options) -> RecordQuery
    by_txid(txid, page) -> RecordQuery
'''

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.index_collection import IndexCollection
from ovn.core.models.lookup_query import PaginatedQuery
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery

logger = logging.getLogger(__name__)

PayloadExtractor = Callable[[AdmittedOutput], Dict[str, Any]]
QueryPlanner = Callable[[Any], RecordQuery]


@dataclass(frozen=True)
class ProtocolDefinition:
    name: str
    topic: str
    service_id: str
    collection: IndexCollection
    policy_factory: Callable[[], IAdmissionPolicy]
    extract_payload: PayloadExtractor
    plan_query: QueryPlanner
    display_name: str = ""
    short_description: str = ""
    documentation: str = ""

    def create_policy(self) -> IAdmissionPolicy:
        policy = self.policy_factory()
        if policy.topic != self.topic:
            raise ValueError(f"La política {policy.__class__.__name__} atiende '{policy.topic}', no '{self.topic}'.")
        return policy

    def get_metadata(self) -> Dict[str, str]:
        return {
            "name": self.display_name or f"{self.name} Lookup Service",
            "shortDescription": self.short_description
        }


def paginated(page: Optional[PaginatedQuery], *conditions: FieldCondition, **options: Any) -> RecordQuery:
    """Consulta de referencias con la paginación, el orden y el rango de fechas de `page`."""
    all_conditions: List[FieldCondition] = list(conditions)
    if page is not None:
        all_conditions.extend(page.date_conditions())
        for key, value in page.page().items():
            options.setdefault(key, value)
    return RecordQuery.where(*all_conditions, **options)


def by_txid(txid: str, page: Optional[PaginatedQuery] = None) -> RecordQuery:
    return paginated(page, FieldCondition("txid", Operator.EQ, txid.lower()))
