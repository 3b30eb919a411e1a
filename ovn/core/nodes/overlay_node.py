# ovn/core/nodes/overlay_node.py

import logging
from typing import Dict, Iterable, List, Optional

from ovn.core.managers.lookup_service import LookupAnswer, LookupService
from ovn.core.models.admission import AdmissionResult, RejectionReason
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.lookup_query import LookupQueryError, LookupQuestion
from ovn.core.models.output_reference import OutputReference
from ovn.core.services.beef_codec import BeefCodec
from ovn.core.services.signature_linkage_verifier import SignatureLinkageVerifier
from ovn.core.services.transaction_serializer import MalformedTransactionError
from ovn.core.validators.admission_engine import AdmissionEngine

logger = logging.getLogger(__name__)

class UnknownTopicError(ValueError):
    pass


class OverlayNode:
    """
    Despachador del overlay.
    Une los motores de admisión (uno por tópico) con los servicios de consulta (uno por protocolo):
    lo admitido se notifica al servicio del mismo tópico; gastos y desalojos se propagan igual.
    """

    def __init__(
        self,
        engines: Iterable[AdmissionEngine],
        services: Iterable[LookupService],
        verifier: Optional[SignatureLinkageVerifier] = None
    ) -> None:
        self._engines: Dict[str, AdmissionEngine] = {e.topic: e for e in engines}
        self._services: Dict[str, LookupService] = {s.service_id: s for s in services}
        self._verifier = verifier if verifier is not None else SignatureLinkageVerifier()
        logger.info(f"🟢 OverlayNode listo: {len(self._engines)} tópicos, {len(self._services)} servicios.")

    def _engine(self, topic: str) -> AdmissionEngine:
        engine = self._engines.get(topic)
        if engine is None:
            raise UnknownTopicError(f"Tópico no soportado: {topic}")
        return engine

    def _services_for(self, topic: str) -> List[LookupService]:
        return [s for s in self._services.values() if s.topic == topic]

    # --- Escritura ---

    def submit(
        self,
        topic: str,
        beef: bytes,
        previous_coins: Iterable[int] = (),
        off_chain_values: Optional[bytes] = None
    ) -> AdmissionResult:
        engine = self._engine(topic)

        try:
            transaction = BeefCodec.parse_transaction(beef)
        except MalformedTransactionError as e:
            logger.info(f"[{topic}] Transacción rechazada: {e}")
            return AdmissionResult.rejected_transaction(RejectionReason.MALFORMED_TRANSACTION)

        result = engine.evaluate(transaction, previous_coins, self._verifier)

        services = self._services_for(topic)
        for index in result.outputs_to_admit:
            output = transaction.outputs[index]
            notification = AdmittedOutput(
                transaction.txid, index, topic,
                output.locking_script, output.satoshis, off_chain_values
            )
            for service in services:
                service.output_admitted(notification)

        return result

    def spend(self, topic: str, reference: OutputReference, spending_txid: Optional[str] = None) -> bool:
        self._engine(topic)
        changed = False
        for service in self._services_for(topic):
            changed = service.output_spent(topic, reference, spending_txid) or changed
        return changed

    def evict(self, topic: str, reference: OutputReference) -> bool:
        self._engine(topic)
        removed = False
        for service in self._services_for(topic):
            removed = service.output_evicted(reference) or removed
        return removed

    # --- Lectura ---

    def lookup(self, question: LookupQuestion) -> LookupAnswer:
        service = self._services.get(question.service)
        if service is None:
            raise LookupQueryError("Lookup service not supported!")
        return service.lookup(question)

    def get_service(self, service_id: str) -> LookupService:
        service = self._services.get(service_id)
        if service is None:
            raise LookupQueryError("Lookup service not supported!")
        return service

    def list_topics(self) -> Dict[str, Dict[str, str]]:
        return {topic: engine.policy.get_metadata() for topic, engine in self._engines.items()}

    def list_services(self) -> Dict[str, Dict[str, str]]:
        return {service_id: service.get_metadata() for service_id, service in self._services.items()}
