# ovn/core/interfaces/i_admission_policy.py

import logging
from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, Iterable, List, Optional

from ovn.core.models.admission import RejectionReason
from ovn.core.models.transaction import Transaction
from ovn.core.models.tx_output import TxOutput
from ovn.core.services.signature_linkage_verifier import SignatureLinkageVerifier

logger = logging.getLogger(__name__)

class AdmissionContext:
    """Datos de una única llamada de admisión. No se comparte entre transacciones."""

    def __init__(
        self,
        transaction: Transaction,
        previous_coins: Iterable[int],
        verifier: SignatureLinkageVerifier
    ) -> None:
        self._transaction = transaction
        self._previous_coins: FrozenSet[int] = frozenset(previous_coins)
        self._verifier = verifier

    @property
    def transaction(self) -> Transaction: return self._transaction
    @property
    def txid(self) -> str: return self._transaction.txid
    @property
    def previous_coins(self) -> FrozenSet[int]: return self._previous_coins
    @property
    def verifier(self) -> SignatureLinkageVerifier: return self._verifier


class TransactionReview:
    """Veredicto global de la transacción tras clasificar todos los outputs."""

    def __init__(self, outputs_to_admit: Iterable[int], coins_to_retain: Iterable[int] = (),
                 veto: Optional[RejectionReason] = None, detail: str = "") -> None:
        self.outputs_to_admit: List[int] = sorted(set(outputs_to_admit))
        self.coins_to_retain: List[int] = sorted(set(coins_to_retain))
        self.veto = veto
        self.detail = detail


class IAdmissionPolicy(ABC):
    """
    [Estrategia de Admisión]
    Contrato de las reglas de un protocolo. El motor de admisión recorre los outputs
    y delega en la política la decisión de cada uno.

    Las implementaciones deben ser puras: sin I/O y sin estado mutable compartido.
    """

    topic: str = ""
    display_name: str = ""
    short_description: str = ""

    @abstractmethod
    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        """
        Valida un output.

        Raises:
            OutputRejected: con el RejectionReason correspondiente si el output no pertenece al protocolo.
            MalformedScriptError: si el script no se puede decodificar.
        """
        pass

    def select_retained_coins(self, context: AdmissionContext, admitted: List[int]) -> List[int]:
        """Inputs previamente retenidos que esta transacción consume legítimamente."""
        return []

    def review_transaction(self, context: AdmissionContext, admitted: List[int]) -> TransactionReview:
        """Barrera final (después de clasificar todos los outputs). Por defecto no veta nada."""
        return TransactionReview(admitted, self.select_retained_coins(context, admitted))

    def get_documentation(self) -> str:
        return self.__class__.__doc__ or ""

    def get_metadata(self) -> Dict[str, str]:
        return {"name": self.display_name or self.topic, "shortDescription": self.short_description}
