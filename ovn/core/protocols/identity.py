# ovn/core/protocols/identity.py
'''
Protocolo de identidad: tokens PushDrop que publican un certificado de identidad
con algunos campos revelados para cualquiera.

    Campos: [certificado JSON, firma]
    Tópico tm_identity / servicio ls_identity / colección identityRecords
'''

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import Field

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext
from ovn.core.models.admission import OutputRejected, RejectionReason
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.certificate import Certificate
from ovn.core.models.immutable_model import ImmutableModel
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.lookup_query import LookupQueryError, parse_query
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery
from ovn.core.models.tx_output import TxOutput
from ovn.core.protocols.protocol_definition import ProtocolDefinition
from ovn.core.scripting.pushdrop import PushDrop
from ovn.core.services.certificate_service import CertificateService, CertificateError
from ovn.core.validators.signed_token_validator import SignedTokenValidator

logger = logging.getLogger(__name__)

# Campos que no aportan a la búsqueda libre (binarios/URLs de imagen)
_NON_SEARCHABLE = ("profilePhoto", "icon")

def _parse_certificate(raw: bytes) -> Certificate:
    data = SignedTokenValidator.json_object(raw, "certificate")
    try:
        return Certificate.from_dict(data)
    except ValueError as e:
        raise OutputRejected(RejectionReason.INVALID_CERTIFICATE, str(e))


class IdentityPolicy(IAdmissionPolicy):
    """
    Admite certificados de identidad publicados por su sujeto.

    Requisitos por output:
    1. PushDrop con [certificado, firma].
    2. La clave de bloqueo deriva del `subject` bajo [1,'identity'] / '1' y la firma es válida.
    3. La firma del certificador es válida.
    4. Al menos un campo se descifra con el keyring público.
    """

    topic = ProtocolConstants.TM_IDENTITY
    display_name = "Identity Topic Manager"
    short_description = "Identity Resolution Protocol"

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        decoded = SignedTokenValidator.decode(output.locking_script)
        SignedTokenValidator.require_fields(decoded, 2)
        certificate = _parse_certificate(decoded.fields[0])

        SignedTokenValidator.check_identity_linkage(
            decoded, certificate.subject, ProtocolConstants.NS_IDENTITY, context.verifier
        )

        if not CertificateService.verify(certificate, context.verifier):
            raise OutputRejected(RejectionReason.INVALID_CERTIFICATE, "firma del certificador inválida")

        try:
            CertificateService.decrypt_fields(certificate)
        except CertificateError as e:
            raise OutputRejected(RejectionReason.INVALID_CERTIFICATE, str(e))


def searchable_attributes(fields: Dict[str, str]) -> str:
    return " ".join(value for name, value in fields.items() if name not in _NON_SEARCHABLE)


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    decoded = PushDrop.decode(notification.locking_script)
    certificate = Certificate.from_dict(json.loads(decoded.fields[0].decode('utf-8')))
    decrypted = CertificateService.decrypt_fields(certificate)
    return {
        "certificate": certificate.to_dict(decrypted),
        "searchableAttributes": searchable_attributes(decrypted)
    }


class IdentityQuery(ImmutableModel):
    serial_number: Optional[str] = Field(None, alias="serialNumber")
    attributes: Optional[Dict[str, str]] = None
    certifiers: Optional[List[str]] = None
    identity_key: Optional[str] = Field(None, alias="identityKey")
    certificate_types: Optional[List[str]] = Field(None, alias="certificateTypes")


def _attribute_conditions(attributes: Dict[str, str]) -> List[FieldCondition]:
    conditions: List[FieldCondition] = []
    for name, value in attributes.items():
        if name == "any":
            conditions.append(FieldCondition("searchableAttributes", Operator.FUZZY, value))
            continue
        if not name or "." in name or '"' in name:
            raise LookupQueryError(f"Nombre de atributo inválido: {name!r}")
        conditions.append(FieldCondition(f"certificate.fields.{name}", Operator.FUZZY, value))
    return conditions


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(IdentityQuery, query)
    certifiers = [c.lower() for c in q.certifiers] if q.certifiers is not None else None

    if q.serial_number is not None:
        return RecordQuery.where(FieldCondition("certificate.serialNumber", Operator.EQ, q.serial_number))

    if q.attributes is not None and certifiers is not None:
        return RecordQuery.where(
            *_attribute_conditions(q.attributes),
            FieldCondition("certificate.certifier", Operator.IN, certifiers)
        )

    if q.identity_key is not None and q.certificate_types is not None and certifiers is not None:
        return RecordQuery.where(
            FieldCondition("certificate.subject", Operator.EQ, q.identity_key.lower()),
            FieldCondition("certificate.type", Operator.IN, q.certificate_types),
            FieldCondition("certificate.certifier", Operator.IN, certifiers)
        )

    if q.identity_key is not None and certifiers is not None:
        return RecordQuery.where(
            FieldCondition("certificate.subject", Operator.EQ, q.identity_key.lower()),
            FieldCondition("certificate.certifier", Operator.IN, certifiers)
        )

    if certifiers is not None:
        return RecordQuery.where(FieldCondition("certificate.certifier", Operator.IN, certifiers))

    raise LookupQueryError(
        "One of the following params is missing: attributes, identityKey, certifiers or certificateTypes"
    )


DEFINITION = ProtocolDefinition(
    name="Identity",
    topic=ProtocolConstants.TM_IDENTITY,
    service_id=ProtocolConstants.LS_IDENTITY,
    collection=IndexCollection(
        name="identityRecords",
        primary_field="certificate.subject",
        spend_mode=SpendMode.DELETE
    ),
    policy_factory=IdentityPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="Identity Lookup Service",
    short_description="Identity resolution made easy.",
    documentation=(
        "# ls_identity\n"
        "Resuelve certificados de identidad publicados.\n\n"
        "Consultas (en orden de prioridad):\n"
        "- `serialNumber`\n"
        "- `attributes` + `certifiers` (búsqueda aproximada; la clave `any` busca en todos los campos)\n"
        "- `identityKey` + `certificateTypes` + `certifiers`\n"
        "- `identityKey` + `certifiers`\n"
        "- `certifiers`\n"
    )
)
