# ovn/core/validators/ledger_balance_validator.py
'''
class LedgerBalanceValidator:
    Conservación de saldos para protocolos de tokens fungibles.

    Para cada input retenido por el dispatcher se suma su cantidad al saldo de su tokenId;
    para cada output admitido se resta. El tokenId centinela de acuñación se re-indexa como
    '<txid>.<vout>' y queda exento. Si algún saldo no-mint termina distinto de cero se veta
    la transacción completa: ningún output admitido y ningún input retenido.
'''

import json
import struct
import logging
from typing import Any, Dict, List, Tuple

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import AdmissionContext, TransactionReview
from ovn.core.models.admission import OutputRejected, RejectionReason
from ovn.core.scripting.opcodes import Opcodes
from ovn.core.scripting.pushdrop import PushDrop
from ovn.core.scripting.script import Script, MalformedScriptError

logger = logging.getLogger(__name__)

class TokenFields:
    """Campos de un token fungible: tokenId, cantidad (u64 LE) y metadatos JSON."""

    def __init__(self, token_id: str, amount: int, custom_fields: Any) -> None:
        self.token_id = token_id
        self.amount = amount
        self.custom_fields = custom_fields

    def is_mint(self, sentinel: str = ProtocolConstants.MINT_SENTINEL) -> bool:
        return self.token_id == sentinel

    @staticmethod
    def from_script(locking_script: bytes) -> 'TokenFields':
        script = Script.from_bytes(locking_script)
        if len(script) < 2 or script[1].op != Opcodes.OP_CHECKSIG:
            raise OutputRejected(RejectionReason.NOT_APPLICABLE, "no es un output de token")

        decoded = PushDrop.decode(script, 'before')
        if len(decoded) < 3:
            raise OutputRejected(RejectionReason.MISSING_FIELD, f"el token tiene {len(decoded)} campos (mínimo 3)")

        token_id_raw, amount_raw, custom_raw = decoded.fields[:3]
        try:
            token_id = token_id_raw.decode('utf-8')
        except UnicodeDecodeError:
            raise OutputRejected(RejectionReason.INVALID_FIELD, "tokenId no es UTF-8")
        if len(amount_raw) != ProtocolConstants.TOKEN_AMOUNT_SIZE:
            raise OutputRejected(RejectionReason.INVALID_FIELD, f"cantidad de {len(amount_raw)} bytes (se esperaban 8)")
        amount = struct.unpack('<Q', amount_raw)[0]
        try:
            custom_fields = json.loads(custom_raw.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise OutputRejected(RejectionReason.INVALID_FIELD, "customFields no es JSON")

        return TokenFields(token_id, amount, custom_fields)

    @staticmethod
    def encode_amount(amount: int) -> bytes:
        return struct.pack('<Q', amount)


class TokenBalanceEntry:
    __slots__ = ("amount", "is_mint")

    def __init__(self, amount: int = 0, is_mint: bool = False) -> None:
        self.amount = amount
        self.is_mint = is_mint

    def __repr__(self) -> str:
        return f"<TokenBalanceEntry amount={self.amount} mint={self.is_mint}>"


class LedgerBalanceValidator:

    def __init__(self, mint_sentinel: str = ProtocolConstants.MINT_SENTINEL) -> None:
        self._mint_sentinel = mint_sentinel

    @property
    def mint_sentinel(self) -> str:
        return self._mint_sentinel

    def _apply(self, balances: Dict[str, TokenBalanceEntry], key: str, delta: int, is_mint: bool) -> None:
        entry = balances.setdefault(key, TokenBalanceEntry())
        entry.amount += delta
        # El último movimiento decide si la clave se trata como acuñación
        entry.is_mint = is_mint

    def compute_balances(self, context: AdmissionContext, admitted: List[int]) -> Tuple[Dict[str, TokenBalanceEntry], List[int]]:
        """Mapa de saldos por tokenId y los inputs retenidos que aportaron al balance."""
        balances: Dict[str, TokenBalanceEntry] = {}
        retained: List[int] = []
        tx = context.transaction

        for index, inp in enumerate(tx.inputs):
            if index not in context.previous_coins:
                continue
            source_output = inp.source_output
            if source_output is None:
                logger.debug(f"Input #{index} sin transacción fuente; se ignora en el balance.")
                continue
            try:
                token = TokenFields.from_script(source_output.locking_script)
            except (OutputRejected, MalformedScriptError) as e:
                logger.debug(f"Input #{index} no es un token válido: {e}")
                continue

            if token.is_mint(self._mint_sentinel):
                self._apply(balances, f"{inp.source_txid}.{inp.source_output_index}", token.amount, True)
            else:
                self._apply(balances, token.token_id, token.amount, False)
            retained.append(index)

        outputs = tx.outputs
        for index in admitted:
            token = TokenFields.from_script(outputs[index].locking_script)
            if token.is_mint(self._mint_sentinel):
                self._apply(balances, f"{context.txid}.{index}", -token.amount, True)
            else:
                self._apply(balances, token.token_id, -token.amount, False)

        return balances, retained

    def review(self, context: AdmissionContext, admitted: List[int]) -> TransactionReview:
        balances, retained = self.compute_balances(context, admitted)
        unbalanced = self.unbalanced_tokens(balances)
        if unbalanced:
            detail = ", ".join(f"{k}={balances[k].amount}" for k in unbalanced)
            logger.warning(f"⚠️ Activos desbalanceados en TX {context.txid[:8]}...: {detail}")
            return TransactionReview([], [], veto=RejectionReason.LEDGER_UNBALANCED, detail=detail)

        return TransactionReview(admitted, retained)

    @staticmethod
    def unbalanced_tokens(balances: Dict[str, TokenBalanceEntry]) -> List[str]:
        return [key for key, entry in balances.items() if entry.amount != 0 and not entry.is_mint]

