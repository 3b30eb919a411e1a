# ovn/core/protocols/apps.py
'''
Catálogo de aplicaciones Metanet publicadas.

    Campos: exactamente [metadata JSON, firma]
    Orden de resultados: metadata.release_date
'''

import logging
from typing import Any, Dict, List, Optional

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext
from ovn.core.models.admission import OutputRejected, RejectionReason
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.lookup_query import LookupQueryError, PaginatedQuery, parse_query
from ovn.core.models.output_reference import OutputReference
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery
from ovn.core.models.tx_output import TxOutput
from ovn.core.protocols.protocol_definition import ProtocolDefinition, paginated
from ovn.core.scripting.pushdrop import PushDrop
from ovn.core.validators.signed_token_validator import SignedTokenValidator

logger = logging.getLogger(__name__)

REQUIRED_METADATA = ("version", "name", "description", "icon", "domain", "publisher", "release_date")
SORT_FIELD = "metadata.release_date"

def validate_metadata(metadata: Dict[str, Any]) -> None:
    for key in REQUIRED_METADATA:
        if not isinstance(metadata.get(key), str):
            raise OutputRejected(RejectionReason.MISSING_FIELD, f"metadata.{key} ausente o no es texto")
    if not (isinstance(metadata.get("httpURL"), str) or isinstance(metadata.get("uhrpURL"), str)):
        raise OutputRejected(RejectionReason.MISSING_FIELD, "se requiere httpURL o uhrpURL")


class AppsPolicy(IAdmissionPolicy):
    """Admite tokens PushDrop que representan apps publicadas, firmados por su `publisher`."""

    topic = ProtocolConstants.TM_APPS
    display_name = "Apps Topic Manager"
    short_description = "Admits PushDrop tokens representing published Metanet Apps into an overlay."

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        decoded = SignedTokenValidator.decode(output.locking_script)
        SignedTokenValidator.require_fields(decoded, 2, exact=2)

        metadata = SignedTokenValidator.json_object(decoded.fields[0], "metadata")
        validate_metadata(metadata)

        SignedTokenValidator.check_identity_linkage(
            decoded, metadata["publisher"], ProtocolConstants.NS_APPS, context.verifier
        )

    def get_metadata(self) -> Dict[str, str]:
        metadata = super().get_metadata()
        metadata["version"] = "0.1.0"
        return metadata


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    decoded = PushDrop.decode(notification.locking_script)
    metadata = SignedTokenValidator.json_object(decoded.fields[0], "metadata")
    return {"metadata": metadata}


class AppCatalogQuery(PaginatedQuery):
    domain: Optional[str] = None
    publisher: Optional[str] = None
    name: Optional[str] = None
    outpoint: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[str] = None


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(AppCatalogQuery, query)

    def sorted_page(*conditions: FieldCondition) -> RecordQuery:
        return RecordQuery.where(
            *conditions, limit=q.limit, skip=q.skip, sort_order=q.sort_order, sort_field=SORT_FIELD
        )

    if q.domain:
        return sorted_page(FieldCondition("metadata.domain", Operator.EQ, q.domain))
    if q.publisher:
        return sorted_page(FieldCondition("metadata.publisher", Operator.EQ, q.publisher))
    if q.tags:
        return sorted_page(FieldCondition("metadata.tags", Operator.ANY_IN, q.tags))
    if q.category:
        return sorted_page(FieldCondition("metadata.category", Operator.EQ, q.category))
    if q.name:
        return sorted_page(FieldCondition("metadata.name", Operator.CONTAINS, q.name))
    if q.outpoint:
        try:
            reference = OutputReference.parse(q.outpoint)
        except ValueError:
            raise LookupQueryError('Invalid outpoint format - expected "txid.outputIndex"')
        # Identificador único: sin paginación
        return paginated(
            None,
            FieldCondition("txid", Operator.EQ, reference.txid),
            FieldCondition("outputIndex", Operator.EQ, reference.output_index),
            limit=1
        )

    return sorted_page()


DEFINITION = ProtocolDefinition(
    name="Apps",
    topic=ProtocolConstants.TM_APPS,
    service_id=ProtocolConstants.LS_APPS,
    collection=IndexCollection(
        name="appsCatalogRecords",
        primary_field="metadata.domain",
        spend_mode=SpendMode.DELETE
    ),
    policy_factory=AppsPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="Apps Lookup Service",
    short_description="Discover Metanet apps published on the overlay.",
    documentation=(
        "# ls_apps\n"
        "Filtros (el primero presente gana): `domain`, `publisher`, `tags` (cualquiera), `category`,\n"
        "`name` (subcadena sin mayúsculas), `outpoint` (`txid.vout`). Sin filtros devuelve todas.\n"
        "Paginación: `limit` (50 por defecto), `skip`, `sortOrder` sobre `release_date`.\n"
    )
)
