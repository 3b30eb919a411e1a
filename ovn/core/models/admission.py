# ovn/core/models/admission.py

from enum import Enum
from typing import Dict, Any, List, Optional, Sequence, Iterable

class RejectionReason(str, Enum):
    # --- Nivel transacción ---
    MALFORMED_TRANSACTION = "malformed_transaction"
    NO_OUTPUTS = "no_outputs"

    # --- Nivel output (estructurales) ---
    MALFORMED_SCRIPT = "malformed_script"
    TEMPLATE_MISMATCH = "template_mismatch"
    AMBIGUOUS_SHAPE = "ambiguous_shape"
    NOT_APPLICABLE = "not_applicable"

    # --- Nivel output (política) ---
    MISSING_FIELD = "missing_field"
    INVALID_FIELD = "invalid_field"
    KEY_NOT_LINKED = "key_not_linked"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_CERTIFICATE = "invalid_certificate"
    LEDGER_UNBALANCED = "ledger_unbalanced"


class OutputRejected(Exception):
    """Señal interna de las políticas: el output no pertenece al protocolo."""

    def __init__(self, reason: RejectionReason, detail: str = "") -> None:
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)
        self.reason = reason
        self.detail = detail


class OutputVerdict:
    """Decisión terminal para un output (Admitted | Rejected)."""

    __slots__ = ("_index", "_reason", "_detail")

    def __init__(self, index: int, reason: Optional[RejectionReason] = None, detail: str = "") -> None:
        self._index = index
        self._reason = reason
        self._detail = detail

    @staticmethod
    def admitted(index: int) -> 'OutputVerdict':
        return OutputVerdict(index)

    @staticmethod
    def rejected(index: int, reason: RejectionReason, detail: str = "") -> 'OutputVerdict':
        return OutputVerdict(index, reason, detail)

    @property
    def index(self) -> int: return self._index
    @property
    def is_admitted(self) -> bool: return self._reason is None
    @property
    def reason(self) -> Optional[RejectionReason]: return self._reason
    @property
    def detail(self) -> str: return self._detail

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outputIndex": self._index,
            "reason": self._reason.value if self._reason else None,
            "detail": self._detail
        }

    def __repr__(self) -> str:
        state = "ADMITTED" if self.is_admitted else f"REJECTED({self._reason.value})" # type: ignore
        return f"<OutputVerdict #{self._index} {state}>"


class AdmissionResult:
    """
    (outputsToAdmit, coinsToRetain) + el motivo de cada rechazo.
    Que no se admita nada es un resultado normal, no un error.
    """

    def __init__(
        self,
        outputs_to_admit: Iterable[int] = (),
        coins_to_retain: Iterable[int] = (),
        verdicts: Sequence[OutputVerdict] = (),
        transaction_reason: Optional[RejectionReason] = None,
        txid: Optional[str] = None
    ) -> None:
        self._outputs_to_admit = sorted(set(outputs_to_admit))
        self._coins_to_retain = sorted(set(coins_to_retain))
        self._verdicts = list(verdicts)
        self._transaction_reason = transaction_reason
        self._txid = txid

    @staticmethod
    def rejected_transaction(reason: RejectionReason, txid: Optional[str] = None) -> 'AdmissionResult':
        return AdmissionResult(transaction_reason=reason, txid=txid)

    @property
    def outputs_to_admit(self) -> List[int]: return self._outputs_to_admit[:]
    @property
    def coins_to_retain(self) -> List[int]: return self._coins_to_retain[:]
    @property
    def verdicts(self) -> List[OutputVerdict]: return self._verdicts[:]
    @property
    def transaction_reason(self) -> Optional[RejectionReason]: return self._transaction_reason
    @property
    def txid(self) -> Optional[str]: return self._txid

    @property
    def is_empty(self) -> bool:
        return not self._outputs_to_admit

    @property
    def rejections(self) -> Dict[int, RejectionReason]:
        return {v.index: v.reason for v in self._verdicts if v.reason is not None}

    def reason_for(self, index: int) -> Optional[RejectionReason]:
        return self.rejections.get(index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outputsToAdmit": self.outputs_to_admit,
            "coinsToRetain": self.coins_to_retain
        }

    def __repr__(self) -> str:
        return f"<AdmissionResult admit={self._outputs_to_admit} retain={self._coins_to_retain}>"
