# ovn/core/protocols/any_tx.py
'''
Protocolo abierto: admite cualquier output y lo anota al gastarse.
'''

import logging
from typing import Any, Dict, Optional

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.lookup_query import PaginatedQuery, parse_query
from ovn.core.models.record_query import AnswerMode, FieldCondition, Operator, RecordQuery
from ovn.core.models.tx_output import TxOutput
from ovn.core.protocols.protocol_definition import ProtocolDefinition, paginated

logger = logging.getLogger(__name__)

class AnyPolicy(IAdmissionPolicy):
    """Todos los outputs pertenecen al tópico."""

    topic = ProtocolConstants.TM_ANY
    display_name = "Any Topic Manager"
    short_description = "Admits every output of a transaction."

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        return None


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    return {}


class AnyQuery(PaginatedQuery):
    txid: Optional[str] = None


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(AnyQuery, query)
    if q.txid:
        # Respuesta 'freeform': el primer registro de esa transacción
        return RecordQuery.where(
            FieldCondition("txid", Operator.EQ, q.txid.lower()), limit=1, answer_mode=AnswerMode.RECORD
        )
    return paginated(q)


DEFINITION = ProtocolDefinition(
    name="Any",
    topic=ProtocolConstants.TM_ANY,
    service_id=ProtocolConstants.LS_ANY,
    collection=IndexCollection(
        name="anyRecords",
        primary_field="txid",
        spend_mode=SpendMode.ANNOTATE
    ),
    policy_factory=AnyPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="Any Lookup Service",
    short_description="Lookup your outputs.",
    documentation=(
        "# ls_anytx\n"
        "`txid` devuelve un único registro (o null). Sin `txid` lista todos los registros con\n"
        "`startDate`/`endDate`, `limit`, `skip` y `sortOrder`.\n"
    )
)
