# ovn/core/protocols/supply_chain.py
'''
Trazabilidad de cadena de suministro. El script lleva dos datos y un candado P2PK;
el contenido útil viaja como valores off-chain (JSON con `chainId`).
'''

import json
import logging
from typing import Any, Dict, Optional

from pydantic import Field

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext
from ovn.core.models.admission import OutputRejected, RejectionReason
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.lookup_query import PaginatedQuery, parse_query
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery
from ovn.core.models.tx_output import TxOutput
from ovn.core.protocols.protocol_definition import ProtocolDefinition, by_txid, paginated
from ovn.core.scripting.templates import match_template

logger = logging.getLogger(__name__)

TEMPLATE_ID = "pushdrop-pair"

class SupplyChainPolicy(IAdmissionPolicy):
    """<dato> <dato> OP_2DROP <pubkey33> OP_CHECKSIG"""

    topic = ProtocolConstants.TM_SUPPLY_CHAIN
    display_name = "SupplyChain Topic Manager"
    short_description = "Supply chain tracking tokens."

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        if not match_template(output.locking_script, TEMPLATE_ID):
            raise OutputRejected(RejectionReason.TEMPLATE_MISMATCH, f"no coincide con '{TEMPLATE_ID}'")


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    if not notification.off_chain_values:
        raise ValueError("Faltan los valores off-chain.")
    values = json.loads(notification.off_chain_values.decode('utf-8'))
    if not isinstance(values, dict) or not values.get("chainId"):
        raise ValueError("Los valores off-chain no incluyen chainId.")
    return {"offChainValues": values}


class SupplyChainQuery(PaginatedQuery):
    txid: Optional[str] = None
    chain_id: Optional[str] = Field(None, alias="chainId")


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(SupplyChainQuery, query)
    if q.txid:
        return by_txid(q.txid, q)
    if q.chain_id:
        return paginated(q, FieldCondition("offChainValues.chainId", Operator.EQ, q.chain_id))
    return paginated(q)


DEFINITION = ProtocolDefinition(
    name="SupplyChain",
    topic=ProtocolConstants.TM_SUPPLY_CHAIN,
    service_id=ProtocolConstants.LS_SUPPLY_CHAIN,
    collection=IndexCollection(
        name="supplyChainRecords",
        primary_field="offChainValues.chainId",
        spend_mode=SpendMode.ANNOTATE
    ),
    policy_factory=SupplyChainPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="SupplyChain Lookup Service",
    short_description="Lookup supply chain records by chain id.",
    documentation=(
        "# ls_supplychain\n"
        "Consultas: `txid`, `chainId`, o todas; con `startDate`/`endDate`, `limit`, `skip` y `sortOrder`.\n"
    )
)
