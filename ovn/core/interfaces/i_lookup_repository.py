# ovn/core/interfaces/i_lookup_repository.py

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ovn.core.models.index_collection import IndexCollection
from ovn.core.models.indexed_record import IndexedRecord
from ovn.core.models.output_reference import OutputReference
from ovn.core.models.record_query import FieldCondition, RecordQuery

logger = logging.getLogger(__name__)

class StorageBackendError(RuntimeError):
    """El backend no pudo leer o persistir. Distinto de un rechazo por reglas de protocolo."""
    pass


class ILookupRepository(ABC):
    """
    [Abstracción de Persistencia del Índice]
    Almacenamiento de registros admitidos, una colección lógica por protocolo.
    Toda falla del motor subyacente se reporta como StorageBackendError.
    """

    @abstractmethod
    def ensure_collection(self, collection: IndexCollection) -> None:
        """Crea la colección y su índice secundario si no existen."""
        pass

    @abstractmethod
    def insert(self, collection: IndexCollection, record: IndexedRecord,
               dedupe: Optional[Sequence[FieldCondition]] = None) -> bool:
        """
        Inserta (o reemplaza) el registro de `record.reference`.
        Si `dedupe` no es vacío y ya existe OTRO registro que lo cumple, no inserta y devuelve False.
        La comprobación y la inserción son atómicas.
        """
        pass

    @abstractmethod
    def mark_spent(self, collection: IndexCollection, reference: OutputReference, spending_txid: str) -> bool:
        pass

    @abstractmethod
    def delete(self, collection: IndexCollection, reference: OutputReference) -> bool:
        """True si había un registro. Borrar algo inexistente no es un error."""
        pass

    @abstractmethod
    def get(self, collection: IndexCollection, reference: OutputReference) -> Optional[IndexedRecord]:
        pass

    @abstractmethod
    def find(self, collection: IndexCollection, query: RecordQuery) -> List[IndexedRecord]:
        pass

    @abstractmethod
    def count(self, collection: IndexCollection) -> int:
        pass

    @abstractmethod
    def clear(self, collection: IndexCollection) -> None:
        pass
