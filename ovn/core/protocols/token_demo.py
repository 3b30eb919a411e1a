# ovn/core/protocols/token_demo.py
'''
Tokens fungibles de demostración con libro mayor conservativo.

    Campos: [tokenId, cantidad (u64 LE, 8 bytes), customFields JSON, ...firma]
    tokenId == '___mint___' acuña un token nuevo cuyo id pasa a ser '<txid>.<vout>'.
'''

import logging
from typing import Any, Dict, List, Optional

from pydantic import Field

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext, TransactionReview
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.lookup_query import LookupQueryError, PaginatedQuery, parse_query
from ovn.core.models.output_reference import OutputReference
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery
from ovn.core.models.tx_output import TxOutput
from ovn.core.protocols.protocol_definition import ProtocolDefinition, paginated
from ovn.core.validators.ledger_balance_validator import LedgerBalanceValidator, TokenFields

logger = logging.getLogger(__name__)

class TokenDemoPolicy(IAdmissionPolicy):
    """
    Admite outputs de token bien formados y luego exige conservación por tokenId:
    lo que entra por inputs retenidos debe salir por outputs admitidos. Si no cuadra,
    se veta la transacción entera.
    """

    topic = ProtocolConstants.TM_TOKEN_DEMO
    display_name = "TokenDemo Topic Manager"
    short_description = "Fungible demo tokens with balance-conserving transfers."

    def __init__(self, ledger: Optional[LedgerBalanceValidator] = None) -> None:
        self._ledger = ledger if ledger is not None else LedgerBalanceValidator()

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        TokenFields.from_script(output.locking_script)

    def review_transaction(self, context: AdmissionContext, admitted: List[int]) -> TransactionReview:
        return self._ledger.review(context, admitted)


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    token = TokenFields.from_script(notification.locking_script)
    token_id = notification.reference.outpoint if token.is_mint() else token.token_id
    return {
        "tokenId": token_id,
        "amount": token.amount,
        "customFields": token.custom_fields
    }


class TokenDemoQuery(PaginatedQuery):
    outpoint: Optional[str] = None
    token_id: Optional[str] = Field(None, alias="tokenId")


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(TokenDemoQuery, query)

    if q.outpoint:
        try:
            reference = OutputReference.parse(q.outpoint)
        except ValueError:
            raise LookupQueryError('Invalid outpoint format - expected "txid.outputIndex"')
        return paginated(
            None,
            FieldCondition("txid", Operator.EQ, reference.txid),
            FieldCondition("outputIndex", Operator.EQ, reference.output_index),
            limit=1
        )

    if q.token_id:
        return paginated(q, FieldCondition("tokenId", Operator.EQ, q.token_id))

    return paginated(q)


DEFINITION = ProtocolDefinition(
    name="TokenDemo",
    topic=ProtocolConstants.TM_TOKEN_DEMO,
    service_id=ProtocolConstants.LS_TOKEN_DEMO,
    collection=IndexCollection(
        name="tokenDemoRecords",
        primary_field="tokenId",
        spend_mode=SpendMode.DELETE
    ),
    policy_factory=TokenDemoPolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="TokenDemo Lookup Service",
    short_description="Lookup demo token outputs by token id.",
    documentation=(
        "# ls_tokendemo\n"
        "Consultas: `outpoint` (`txid.vout`), `tokenId`, o todas; con `startDate`/`endDate`,\n"
        "`limit`, `skip` y `sortOrder`.\n"
    )
)
