# ovn/core/protocols/desktop_integrity.py
'''
Integridad de binarios de escritorio: OP_FALSE OP_RETURN <0x20 + hash de 32 bytes>.
El primer byte del dato es la longitud del hash.
'''

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
from ovn.core.scripting.templates import extract_template_data, match_template

logger = logging.getLogger(__name__)

TEMPLATE_ID = "op-return-hash"
HASH_SIZE = 32

def file_hash(locking_script: bytes) -> bytes:
    data = extract_template_data(locking_script, TEMPLATE_ID)[0]
    if data[0] != HASH_SIZE:
        raise OutputRejected(RejectionReason.INVALID_FIELD, "el hash del archivo debe ser de 32 bytes")
    return data[1:]


class DesktopIntegrityPolicy(IAdmissionPolicy):
    """Admite anclajes de hash de archivo con forma exacta."""

    topic = ProtocolConstants.TM_DESKTOP_INTEGRITY
    display_name = "DesktopIntegrity Topic Manager"
    short_description = "Anchors desktop file hashes for integrity checks."

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        if not match_template(output.locking_script, TEMPLATE_ID):
            raise OutputRejected(RejectionReason.TEMPLATE_MISMATCH, f"no coincide con '{TEMPLATE_ID}'")
        file_hash(output.locking_script)


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"fileHash": file_hash(notification.locking_script).hex()}
    if notification.off_chain_values is not None:
        payload["offChainValues"] = notification.off_chain_values.hex()
    return payload


class DesktopIntegrityQuery(PaginatedQuery):
    file_hash: Optional[str] = Field(None, alias="fileHash")
    txid: Optional[str] = None


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(DesktopIntegrityQuery, query)
    if q.file_hash:
        return paginated(q, FieldCondition("fileHash", Operator.EQ, q.file_hash.lower()))
    if q.txid:
        return by_txid(q.txid, q)
    return paginated(q)


DEFINITION = ProtocolDefinition(
    name="DesktopIntegrity",
    topic=ProtocolConstants.TM_DESKTOP_INTEGRITY,
    service_id=ProtocolConstants.LS_DESKTOP_INTEGRITY,
    collection=IndexCollection(
        name="desktopIntegrityRecords",
        primary_field="fileHash",
        spend_mode=SpendMode.DELETE
    ),
    policy_factory=DesktopIntegrityPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="DesktopIntegrity Lookup Service",
    short_description="Lookup file hashes anchored on chain.",
    documentation=(
        "# ls_desktopintegrity\n"
        "Consultas: `fileHash` (hex), `txid`, o todas; con `startDate`/`endDate`, `limit`, `skip` y `sortOrder`.\n"
    )
)
