# ovn/core/managers/lookup_index.py

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ovn.core.config.config_manager import ConfigManager
from ovn.core.interfaces.i_lookup_repository import ILookupRepository
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.indexed_record import IndexedRecord
from ovn.core.models.output_reference import OutputReference
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery

logger = logging.getLogger(__name__)

_MISSING = object()

def value_at(payload: Dict[str, Any], path: str) -> Any:
    """Valor en una ruta con puntos del payload, o None si no existe."""
    current: Any = payload
    for segment in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(segment, _MISSING)
        if current is _MISSING:
            return None
    return current


class LookupIndex:
    """
    Gestor de Estado de un protocolo: registros admitidos por (txid, outputIndex).
    Actúa como intermediario entre el servicio de consultas y el almacenamiento.

    [THREAD-SAFE]: store/spend/evict sobre una misma clave se serializan con candados
    por franjas (hash de la clave); claves distintas no se bloquean entre sí.
    Las lecturas no toman candados de clave.
    """

    def __init__(self, repository: ILookupRepository, collection: IndexCollection,
                 lock_stripes: Optional[int] = None) -> None:
        self._repository = repository
        self._collection = collection
        stripes = lock_stripes if lock_stripes is not None else ConfigManager().lookup.lock_stripes
        self._locks = [threading.Lock() for _ in range(max(1, stripes))]
        self._repository.ensure_collection(collection)
        logger.info(f"Índice '{collection.name}' listo (spend={collection.spend_mode.value}).")

    @property
    def collection(self) -> IndexCollection:
        return self._collection

    def _lock_for(self, reference: OutputReference) -> threading.Lock:
        return self._locks[hash((reference.txid, reference.output_index)) % len(self._locks)]

    # --- Ciclo de vida ---

    def store(self, reference: OutputReference, payload: Dict[str, Any],
              created_at: Optional[datetime] = None) -> bool:
        """
        Registra un output admitido. Devuelve False si el payload es un duplicado semántico
        de otro registro (colecciones con dedupe_fields).

        Raises:
            StorageBackendError: si el backend no pudo persistir.
        """
        record = IndexedRecord(reference, payload, created_at or datetime.now(timezone.utc))
        dedupe = [
            FieldCondition(path, Operator.EQ, value_at(payload, path))
            for path in self._collection.dedupe_fields
        ]
        with self._lock_for(reference):
            stored = self._repository.insert(self._collection, record, dedupe or None)

        if stored:
            logger.debug(f"[{self._collection.name}] + {reference}")
        return stored

    def spend(self, reference: OutputReference, spending_txid: Optional[str] = None) -> bool:
        """
        Borra o anota el registro según el modo de gasto de la colección.
        Gastar un registro inexistente no es un error (devuelve False).
        """
        with self._lock_for(reference):
            if self._collection.spend_mode == SpendMode.ANNOTATE:
                if not spending_txid:
                    raise ValueError(f"La colección {self._collection.name} requiere spendingTxid.")
                changed = self._repository.mark_spent(self._collection, reference, spending_txid)
            else:
                changed = self._repository.delete(self._collection, reference)

        if changed:
            logger.debug(f"[{self._collection.name}] gastado {reference}")
        return changed

    def evict(self, reference: OutputReference) -> bool:
        """Borrado incondicional (ej. reorganización), sin importar el modo de gasto."""
        with self._lock_for(reference):
            removed = self._repository.delete(self._collection, reference)

        if removed:
            logger.info(f"[{self._collection.name}] 🧹 desalojado {reference}")
        return removed

    # --- Consultas ---

    def _bounded(self, query: RecordQuery) -> RecordQuery:
        config = ConfigManager().lookup
        limit = config.default_limit if query.limit is None else query.limit
        limit = min(limit, config.max_limit)
        return RecordQuery(
            conditions=query.conditions,
            limit=limit,
            skip=query.skip,
            sort_order=query.sort_order,
            sort_field=query.sort_field,
            answer_mode=query.answer_mode
        )

    def find_records(self, query: RecordQuery) -> List[IndexedRecord]:
        return self._repository.find(self._collection, self._bounded(query))

    def find(self, query: RecordQuery) -> List[OutputReference]:
        return [record.reference for record in self.find_records(query)]

    def get(self, reference: OutputReference) -> Optional[IndexedRecord]:
        return self._repository.get(self._collection, reference)

    def count(self) -> int:
        return self._repository.count(self._collection)

    def clear(self) -> None:
        logger.warning(f"⚠️  Índice {self._collection.name} reiniciado (CLEAR).")
        self._repository.clear(self._collection)
