# ovn/core/protocols/message_box.py
'''
Anuncios de MessageBox: qué host enruta los mensajes de una clave de identidad.

    Campos: [identityKey (bytes), host (UTF-8), firma]
'''

import logging
from typing import Any, Dict, List, Optional

from pydantic import Field

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.immutable_model import ImmutableModel
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.lookup_query import LookupQueryError, parse_query
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery
from ovn.core.models.tx_output import TxOutput
from ovn.core.protocols.protocol_definition import ProtocolDefinition
from ovn.core.scripting.pushdrop import PushDrop
from ovn.core.validators.signed_token_validator import SignedTokenValidator

logger = logging.getLogger(__name__)

class MessageBoxPolicy(IAdmissionPolicy):
    """Admite anuncios de host firmados por la identidad anunciada."""

    topic = ProtocolConstants.TM_MESSAGEBOX
    display_name = "MessageBox Topic Manager"
    short_description = "Advertises and validates hosts for message routing."

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        decoded = SignedTokenValidator.decode(output.locking_script)
        SignedTokenValidator.require_fields(decoded, 3)

        identity_key = SignedTokenValidator.non_empty(decoded.field(0), "identityKey")
        host = SignedTokenValidator.non_empty(decoded.field(1), "host")
        SignedTokenValidator.utf8(host, "host")

        SignedTokenValidator.check_identity_linkage(
            decoded, identity_key.hex(), ProtocolConstants.NS_MESSAGEBOX, context.verifier
        )

    def select_retained_coins(self, context: AdmissionContext, admitted: List[int]) -> List[int]:
        # Los anuncios previos consumidos se conservan siempre
        return sorted(context.previous_coins)


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    decoded = PushDrop.decode(notification.locking_script)
    identity_key, host = decoded.fields[0], decoded.fields[1]
    return {"identityKey": identity_key.hex(), "host": host.decode('utf-8')}


class MessageBoxQuery(ImmutableModel):
    identity_key: Optional[str] = Field(None, alias="identityKey")
    host: Optional[str] = None


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(MessageBoxQuery, query)
    if not q.identity_key:
        raise LookupQueryError("identityKey query missing")

    conditions = [FieldCondition("identityKey", Operator.EQ, q.identity_key.lower())]
    if q.host is not None:
        conditions.append(FieldCondition("host", Operator.EQ, q.host))
    return RecordQuery.where(*conditions)


DEFINITION = ProtocolDefinition(
    name="MessageBox",
    topic=ProtocolConstants.TM_MESSAGEBOX,
    service_id=ProtocolConstants.LS_MESSAGEBOX,
    collection=IndexCollection(
        name="messageboxAdvertisements",
        primary_field="identityKey",
        spend_mode=SpendMode.DELETE
    ),
    policy_factory=MessageBoxPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="MessageBox Lookup Service",
    short_description="Lookup overlay hosts for identity keys (MessageBox)",
    documentation=(
        "# ls_messagebox\n"
        "Consulta: `identityKey` (obligatorio) y `host` (opcional). Devuelve los anuncios más recientes primero.\n"
    )
)
