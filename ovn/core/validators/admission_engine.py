# ovn/core/validators/admission_engine.py
'''
class AdmissionEngine:
    Motor de admisión parametrizado por una política de protocolo (estrategia).

    Para cada output: Unseen -> {Admitted | Rejected}, decidido una sola vez e
    independientemente del resto. Un output mal formado nunca detiene la evaluación
    de sus hermanos. Tras clasificar todos los outputs, la política puede vetar la
    transacción completa (ej. libro mayor desbalanceado).

    Methods:
        identify_admissible_outputs(beef, previous_coins, verifier=None) -> AdmissionResult
        evaluate(transaction, previous_coins, verifier=None) -> AdmissionResult
'''

import logging
from typing import Iterable, List, Optional

from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext
from ovn.core.models.admission import AdmissionResult, OutputRejected, OutputVerdict, RejectionReason
from ovn.core.models.transaction import Transaction
from ovn.core.models.tx_output import TxOutput
from ovn.core.scripting.script import MalformedScriptError
from ovn.core.services.beef_codec import BeefCodec
from ovn.core.services.key_deriver import InvoiceNumberError
from ovn.core.services.signature_linkage_verifier import SignatureLinkageVerifier
from ovn.core.services.transaction_serializer import MalformedTransactionError

logger = logging.getLogger(__name__)

class AdmissionEngine:

    def __init__(self, policy: IAdmissionPolicy) -> None:
        self._policy = policy

    @property
    def policy(self) -> IAdmissionPolicy:
        return self._policy

    @property
    def topic(self) -> str:
        return self._policy.topic

    def identify_admissible_outputs(
        self,
        beef: bytes,
        previous_coins: Iterable[int] = (),
        verifier: Optional[SignatureLinkageVerifier] = None
    ) -> AdmissionResult:
        try:
            transaction = BeefCodec.parse_transaction(beef)
        except MalformedTransactionError as e:
            logger.info(f"[{self.topic}] Transacción rechazada: {e}")
            return AdmissionResult.rejected_transaction(RejectionReason.MALFORMED_TRANSACTION)
        return self.evaluate(transaction, previous_coins, verifier)

    def evaluate(
        self,
        transaction: Transaction,
        previous_coins: Iterable[int] = (),
        verifier: Optional[SignatureLinkageVerifier] = None
    ) -> AdmissionResult:
        outputs = transaction.outputs
        if not outputs:
            logger.info(f"[{self.topic}] Transacción {transaction.txid[:8]}... sin outputs.")
            return AdmissionResult.rejected_transaction(RejectionReason.NO_OUTPUTS, transaction.txid)

        context = AdmissionContext(
            transaction,
            previous_coins,
            verifier if verifier is not None else SignatureLinkageVerifier()
        )

        verdicts: List[OutputVerdict] = [
            self._evaluate_output(output, index, context) for index, output in enumerate(outputs)
        ]
        admitted = [v.index for v in verdicts if v.is_admitted]

        # Barrera: la revisión global solo corre con todos los outputs clasificados
        review = self._policy.review_transaction(context, admitted)
        if review.veto is not None:
            logger.info(f"[{self.topic}] ⚠️ TX {context.txid[:8]}... vetada: {review.veto.value} {review.detail}")
            verdicts = [
                OutputVerdict.rejected(v.index, review.veto, review.detail) if v.is_admitted else v
                for v in verdicts
            ]

        result = AdmissionResult(
            outputs_to_admit=review.outputs_to_admit,
            coins_to_retain=review.coins_to_retain,
            verdicts=verdicts,
            txid=context.txid
        )

        if result.is_empty:
            logger.info(f"[{self.topic}] Ningún output admitido en TX {context.txid[:8]}...")
        else:
            logger.info(f"[{self.topic}] ✅ Admitidos {result.outputs_to_admit} de TX {context.txid[:8]}...")
        return result

    def _evaluate_output(self, output: TxOutput, index: int, context: AdmissionContext) -> OutputVerdict:
        try:
            self._policy.check_output(output, index, context)
            return OutputVerdict.admitted(index)
        except OutputRejected as e:
            logger.debug(f"[{self.topic}] Output #{index} rechazado: {e}")
            return OutputVerdict.rejected(index, e.reason, e.detail)
        except MalformedScriptError as e:
            logger.debug(f"[{self.topic}] Output #{index} con script mal formado: {e}")
            return OutputVerdict.rejected(index, RejectionReason.MALFORMED_SCRIPT, str(e))
        except InvoiceNumberError:
            raise
        except ValueError as e:
            # Campos que no se dejan decodificar (UTF-8, JSON, hex)
            logger.debug(f"[{self.topic}] Output #{index} con campo inválido: {e}")
            return OutputVerdict.rejected(index, RejectionReason.INVALID_FIELD, str(e))
        except Exception as e:
            # Un fallo inesperado de la política solo descarta este output
            logger.warning(f"[{self.topic}] ⚠️ Error inesperado evaluando output #{index}: {e}", exc_info=True)
            return OutputVerdict.rejected(index, RejectionReason.INVALID_FIELD, f"{type(e).__name__}: {e}")
