# ovn/core/managers/lookup_service.py
'''
class LookupService:
    Servicio de consultas de un protocolo. Recibe las notificaciones del despachador
    (output admitido / gastado / desalojado) y responde preguntas de clientes.

    Methods:
        output_admitted(notification) -> bool: Extrae el payload y lo guarda en el índice.
        output_spent(topic, reference, spending_txid) -> bool
        output_evicted(reference) -> bool
        lookup(question) -> Union[List[Dict], Dict, None]
        get_documentation() -> str
        get_metadata() -> Dict[str, str]
'''

import logging
from typing import Any, Dict, List, Optional, Union

from ovn.core.interfaces.i_lookup_repository import StorageBackendError
from ovn.core.managers.lookup_index import LookupIndex
from ovn.core.models.admission import OutputRejected
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.lookup_query import LookupQueryError, LookupQuestion
from ovn.core.models.output_reference import OutputReference
from ovn.core.models.record_query import AnswerMode
from ovn.core.protocols.protocol_definition import ProtocolDefinition

logger = logging.getLogger(__name__)

LookupAnswer = Union[List[Dict[str, Any]], Dict[str, Any], None]

class LookupService:

    def __init__(self, definition: ProtocolDefinition, index: LookupIndex) -> None:
        self._definition = definition
        self._index = index

    @property
    def service_id(self) -> str:
        return self._definition.service_id

    @property
    def topic(self) -> str:
        return self._definition.topic

    @property
    def index(self) -> LookupIndex:
        return self._index

    # --- Notificaciones del despachador ---

    def output_admitted(self, notification: AdmittedOutput) -> bool:
        """
        Indexa un output admitido. Un fallo al extraer o al persistir se registra y
        devuelve False: la transacción ya fue aceptada y el índice no puede deshacerla.
        """
        if notification.topic != self.topic:
            return False

        try:
            payload = self._definition.extract_payload(notification)
        except (ValueError, KeyError, OutputRejected) as e:
            logger.warning(f"[{self.service_id}] No se pudo extraer el payload de {notification.reference}: {e}")
            return False

        try:
            return self._index.store(notification.reference, payload)
        except StorageBackendError as e:
            logger.error(f"[{self.service_id}] ❌ Fallo al indexar {notification.reference}: {e}", exc_info=True)
            return False

    def output_spent(self, topic: str, reference: OutputReference, spending_txid: Optional[str] = None) -> bool:
        if topic != self.topic:
            return False
        return self._index.spend(reference, spending_txid)

    def output_evicted(self, reference: OutputReference) -> bool:
        return self._index.evict(reference)

    # --- Consultas ---

    def lookup(self, question: LookupQuestion) -> LookupAnswer:
        """
        Raises:
            LookupQueryError: servicio equivocado o consulta inválida (antes de tocar el almacenamiento).
            StorageBackendError: el backend falló; nunca se convierte en una respuesta vacía.
        """
        if question.service != self.service_id:
            raise LookupQueryError("Lookup service not supported!")
        if question.query is None:
            raise LookupQueryError("A valid query must be provided!")

        try:
            query = self._definition.plan_query(question.query)
        except ValueError as e:
            if isinstance(e, LookupQueryError):
                raise
            raise LookupQueryError(str(e))

        if query.answer_mode == AnswerMode.RECORD:
            records = self._index.find_records(query)
            return records[0].to_dict() if records else None

        return [reference.to_dict() for reference in self._index.find(query)]

    def get_documentation(self) -> str:
        return self._definition.documentation

    def get_metadata(self) -> Dict[str, str]:
        return self._definition.get_metadata()
