# ovn/core/protocols/wallet_config.py
'''
Registro de configuraciones de billetera (descubrimiento de servicios WAB, storage y messagebox).

    Campos: [configID, name, icon, wab, storage, messagebox, legal, registryOperator, firma]
    Tópico tm_walletconfig / servicio ls_walletconfig / colección walletConfigRecords
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

REGISTRATION_FIELDS = (
    "configID", "name", "icon", "wab", "storage", "messagebox", "legal", "registryOperator"
)

def decode_registration(fields: List[bytes]) -> Dict[str, str]:
    return {
        name: SignedTokenValidator.utf8(raw, name)
        for name, raw in zip(REGISTRATION_FIELDS, fields)
    }


class WalletConfigPolicy(IAdmissionPolicy):
    """Admite registros firmados por su operador de registro bajo [1,'wallet config option']."""

    topic = ProtocolConstants.TM_WALLET_CONFIG
    display_name = "WalletConfig"
    short_description = "Register wallet configuration options for service discovery"

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        decoded = SignedTokenValidator.decode(output.locking_script)
        SignedTokenValidator.require_fields(decoded, len(REGISTRATION_FIELDS) + 1)

        registration = decode_registration(decoded.fields)
        SignedTokenValidator.check_identity_linkage(
            decoded, registration["registryOperator"], ProtocolConstants.NS_WALLET_CONFIG, context.verifier
        )


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    decoded = PushDrop.decode(notification.locking_script)
    return {"registration": decode_registration(decoded.fields)}


class WalletConfigQuery(ImmutableModel):
    config_id: Optional[str] = Field(None, alias="configID")
    name: Optional[str] = None
    wab: Optional[str] = None
    storage: Optional[str] = None
    messagebox: Optional[str] = None
    registry_operators: Optional[List[str]] = Field(None, alias="registryOperators")


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(WalletConfigQuery, query)
    if not q.registry_operators:
        raise LookupQueryError("registryOperators must be provided!")

    operators = FieldCondition("registration.registryOperator", Operator.IN, q.registry_operators)

    if q.config_id is not None:
        return RecordQuery.where(FieldCondition("registration.configID", Operator.EQ, q.config_id), operators)
    if q.name is not None:
        return RecordQuery.where(FieldCondition("registration.name", Operator.FUZZY, q.name), operators)
    if q.wab is not None:
        return RecordQuery.where(FieldCondition("registration.wab", Operator.EQ, q.wab), operators)
    if q.storage is not None:
        return RecordQuery.where(FieldCondition("registration.storage", Operator.EQ, q.storage), operators)
    if q.messagebox is not None:
        return RecordQuery.where(FieldCondition("registration.messagebox", Operator.EQ, q.messagebox), operators)

    # Solo operadores: listar todo
    return RecordQuery.where(operators)


DEFINITION = ProtocolDefinition(
    name="WalletConfig",
    topic=ProtocolConstants.TM_WALLET_CONFIG,
    service_id=ProtocolConstants.LS_WALLET_CONFIG,
    collection=IndexCollection(
        name="walletConfigRecords",
        primary_field="registration.registryOperator",
        spend_mode=SpendMode.DELETE,
        dedupe_fields=tuple(f"registration.{name}" for name in REGISTRATION_FIELDS)
    ),
    policy_factory=WalletConfigPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="WalletConfig Lookup Service",
    short_description="Wallet configuration service discovery",
    documentation=(
        "# ls_walletconfig\n"
        "`registryOperators` es obligatorio. Filtros opcionales (el primero presente gana):\n"
        "`configID`, `name` (aproximado), `wab`, `storage`, `messagebox`. Sin filtros lista todo.\n"
    )
)
