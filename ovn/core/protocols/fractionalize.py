# ovn/core/protocols/fractionalize.py
'''
Propiedad fraccionada: tokens BSV-20 del servidor, transferencias a usuarios y pagos multisig.

Clasificación por marcadores antes de comparar plantillas (una sola categoría por output):
    OP_IF y OP_CHECKMULTISIG -> server-token
    solo OP_IF               -> transfer-token
    solo OP_CHECKMULTISIG    -> payment
    ninguno                  -> forma ambigua (rechazo)
'''

import logging
from typing import Any, Dict, Optional

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext
from ovn.core.models.admission import OutputRejected, RejectionReason
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.lookup_query import PaginatedQuery, parse_query
from ovn.core.models.record_query import RecordQuery
from ovn.core.models.tx_output import TxOutput
from ovn.core.protocols.protocol_definition import ProtocolDefinition, by_txid, paginated
from ovn.core.scripting.opcodes import Opcodes
from ovn.core.scripting.script import Script
from ovn.core.scripting.templates import get_template
from ovn.core.validators.inscription_validator import InscriptionValidator

logger = logging.getLogger(__name__)

def classify(script: Script) -> str:
    is_ordinal = script.has_opcode(Opcodes.OP_IF)
    is_multisig = script.has_opcode(Opcodes.OP_CHECKMULTISIG)

    if is_ordinal and is_multisig:
        return "server-token"
    if is_ordinal:
        return "transfer-token"
    if is_multisig:
        return "payment"
    raise OutputRejected(RejectionReason.AMBIGUOUS_SHAPE, "sin marcador de inscripción ni de multisig")


class FractionalizePolicy(IAdmissionPolicy):
    """Admite outputs cuya forma coincide exactamente con la plantilla de su categoría."""

    topic = ProtocolConstants.TM_FRACTIONALIZE
    display_name = "Fractionalize Topic Manager"
    short_description = "Fractionalize topic manager for the fractionalized ownership PoC"

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        script = Script.from_bytes(output.locking_script)
        category = classify(script)
        template = get_template(category)

        if not template.matches(script):
            raise OutputRejected(RejectionReason.TEMPLATE_MISMATCH, f"no coincide con '{category}'")

        if category != "payment":
            # Primer dato capturado: el JSON inscrito
            inscription = template.extract(script)[0]
            InscriptionValidator.check(inscription, ("bsv-20",))

        logger.debug(f"[{self.topic}] Output #{index} admitido como {category}")


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    return {"category": classify(Script.from_bytes(notification.locking_script))}


class FractionalizeQuery(PaginatedQuery):
    txid: Optional[str] = None


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(FractionalizeQuery, query)
    if q.txid:
        return by_txid(q.txid, q)
    return paginated(q)


DEFINITION = ProtocolDefinition(
    name="Fractionalize",
    topic=ProtocolConstants.TM_FRACTIONALIZE,
    service_id=ProtocolConstants.LS_FRACTIONALIZE,
    collection=IndexCollection(
        name="fractionalizeRecords",
        primary_field="txid",
        spend_mode=SpendMode.DELETE
    ),
    policy_factory=FractionalizePolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="Fractionalize Lookup Service",
    short_description="Lookup fractionalized ownership outputs.",
    documentation=(
        "# ls_fractionalize\n"
        "Consultas: `txid` o todas, con `startDate`/`endDate`, `limit`, `skip` y `sortOrder`.\n"
    )
)
