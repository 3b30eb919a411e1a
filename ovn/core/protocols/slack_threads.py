# ovn/core/protocols/slack_threads.py

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

TEMPLATE_ID = "sha256-lock"

class SlackThreadPolicy(IAdmissionPolicy):
    """Hilos de Slack anclados como OP_SHA256 <hash del hilo> OP_EQUAL."""

    topic = ProtocolConstants.TM_SLACK_THREAD
    display_name = "SlackThread Topic Manager"
    short_description = "Anchors Slack thread hashes on chain."

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        if not match_template(output.locking_script, TEMPLATE_ID):
            raise OutputRejected(RejectionReason.TEMPLATE_MISMATCH, f"no coincide con '{TEMPLATE_ID}'")


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    thread_hash = extract_template_data(notification.locking_script, TEMPLATE_ID)[0]
    return {"threadHash": thread_hash.hex()}


class SlackThreadQuery(PaginatedQuery):
    thread_hash: Optional[str] = Field(None, alias="threadHash")
    txid: Optional[str] = None


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(SlackThreadQuery, query)
    if q.thread_hash:
        return paginated(q, FieldCondition("threadHash", Operator.EQ, q.thread_hash.lower()))
    if q.txid:
        return by_txid(q.txid, q)
    return paginated(q)


DEFINITION = ProtocolDefinition(
    name="SlackThread",
    topic=ProtocolConstants.TM_SLACK_THREAD,
    service_id=ProtocolConstants.LS_SLACK_THREAD,
    collection=IndexCollection(
        name="slackThreadRecords",
        primary_field="threadHash",
        spend_mode=SpendMode.DELETE
    ),
    policy_factory=SlackThreadPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="SlackThread Lookup Service",
    short_description="Lookup anchored Slack threads by hash.",
    documentation=(
        "# ls_slackthread\n"
        "Consultas: `threadHash` (hex), `txid`, o todas; con `startDate`/`endDate`, `limit`, `skip` y `sortOrder`.\n"
    )
)
