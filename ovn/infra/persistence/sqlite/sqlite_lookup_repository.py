# ovn/infra/persistence/sqlite/sqlite_lookup_repository.py

import re
import json
import sqlite3
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Set, Tuple

from ovn.core.interfaces.i_lookup_repository import ILookupRepository, StorageBackendError
from ovn.core.models.index_collection import IndexCollection
from ovn.core.models.indexed_record import IndexedRecord
from ovn.core.models.output_reference import OutputReference
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery, SortOrder
from ovn.infra.persistence.database_manager import DatabaseManager

logger = logging.getLogger(__name__)

# Formato fijo (UTC, microsegundos) para que el orden lexicográfico sea el cronológico
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"

_COLUMNS = {
    "txid": "txid",
    "outputIndex": "output_index",
    "createdAt": "created_at",
    "spendingTxid": "spending_txid",
}

def _format_ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)

def _parse_ts(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)

def json_path(path: str) -> str:
    """'metadata.release_date' -> '$."metadata"."release_date"'."""
    segments = path.split(".")
    if any(not s or '"' in s for s in segments):
        raise ValueError(f"Ruta de campo inválida: {path!r}")
    return "$" + "".join(f'."{s}"' for s in segments)

def fuzzy_pattern(text: str) -> str:
    """Los caracteres en orden, con cualquier cosa entre ellos."""
    return ".*".join(re.escape(c) for c in text)


class SqliteLookupRepository(ILookupRepository):
    """
    Una tabla por colección:
        id | txid | output_index | payload (JSON) | created_at | spending_txid
    con UNIQUE(txid, output_index) e índice de expresión sobre el campo principal.
    """

    def __init__(self):
        self.db_manager = DatabaseManager()
        self.conn = self.db_manager.get_connection()
        self._lock = self.db_manager.lock
        self._ready: Set[str] = set()
        logger.debug("🗂️ SqliteLookupRepository inicializado.")

    # --- Esquema ---

    def ensure_collection(self, collection: IndexCollection) -> None:
        if collection.name in self._ready:
            return
        table = collection.name
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(f'''
                    CREATE TABLE IF NOT EXISTS {table} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        txid TEXT NOT NULL,
                        output_index INTEGER NOT NULL,
                        payload TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        spending_txid TEXT,
                        UNIQUE (txid, output_index)
                    )
                ''')
                cursor.execute(f'CREATE INDEX IF NOT EXISTS idx_{table}_created ON {table} (created_at)')
                if collection.primary_field and collection.primary_field not in _COLUMNS:
                    literal = json_path(collection.primary_field).replace("'", "''")
                    cursor.execute(
                        f"CREATE INDEX IF NOT EXISTS idx_{table}_primary ON {table} (json_extract(payload, '{literal}'))"
                    )
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error(f"❌ No se pudo crear la colección {table}: {e}", exc_info=True)
                raise StorageBackendError(f"No se pudo crear la colección {table}: {e}") from e
        self._ready.add(collection.name)
        logger.debug(f"Colección '{table}' lista.")

    # --- Traducción de filtros ---

    @staticmethod
    def _expression(path: str) -> Tuple[str, List[Any]]:
        column = _COLUMNS.get(path)
        if column is not None:
            return column, []
        return "json_extract(payload, ?)", [json_path(path)]

    @staticmethod
    def _sql_value(path: str, value: Any) -> Any:
        if isinstance(value, datetime):
            return _format_ts(value)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (dict, list)):
            return json.dumps(value, sort_keys=True)
        return value

    def _condition(self, condition: FieldCondition) -> Tuple[str, List[Any]]:
        expr, params = self._expression(condition.path)
        op = condition.operator
        value = condition.value

        if op == Operator.EQ:
            if value is None:
                return f"{expr} IS NULL", params
            return f"{expr} = ?", params + [self._sql_value(condition.path, value)]

        if op == Operator.IN:
            values = list(value)
            if not values:
                return "0", []
            marks = ", ".join("?" for _ in values)
            return f"{expr} IN ({marks})", params + [self._sql_value(condition.path, v) for v in values]

        if op == Operator.FUZZY:
            return f"{expr} REGEXP ?", params + [fuzzy_pattern(str(value))]

        if op == Operator.CONTAINS:
            return f"{expr} REGEXP ?", params + [re.escape(str(value))]

        if op == Operator.ANY_IN:
            values = list(value)
            if not values:
                return "0", []
            if condition.is_column:
                raise ValueError(f"ANY_IN no aplica a la columna {condition.path}")
            marks = ", ".join("?" for _ in values)
            return (
                f"EXISTS (SELECT 1 FROM json_each(payload, ?) AS item WHERE item.value IN ({marks}))",
                [json_path(condition.path)] + [self._sql_value(condition.path, v) for v in values]
            )

        if op == Operator.GTE:
            return f"{expr} >= ?", params + [self._sql_value(condition.path, value)]

        if op == Operator.LTE:
            return f"{expr} <= ?", params + [self._sql_value(condition.path, value)]

        raise ValueError(f"Operador no soportado: {op}")

    def _where(self, conditions: Sequence[FieldCondition]) -> Tuple[str, List[Any]]:
        if not conditions:
            return "1", []
        clauses: List[str] = []
        params: List[Any] = []
        for condition in conditions:
            clause, values = self._condition(condition)
            clauses.append(f"({clause})")
            params.extend(values)
        return " AND ".join(clauses), params

    @staticmethod
    def _row_to_record(row: Tuple[Any, ...]) -> IndexedRecord:
        txid, output_index, payload, created_at, spending_txid = row
        return IndexedRecord(
            reference=OutputReference(txid, int(output_index)),
            payload=json.loads(payload),
            created_at=_parse_ts(created_at),
            spending_txid=spending_txid
        )

    # --- Escrituras ---

    def insert(self, collection: IndexCollection, record: IndexedRecord,
               dedupe: Optional[Sequence[FieldCondition]] = None) -> bool:
        self.ensure_collection(collection)
        table = collection.name
        with self._lock:
            try:
                cursor = self.conn.cursor()
                if not self.conn.in_transaction:
                    cursor.execute("BEGIN IMMEDIATE")

                if dedupe:
                    where, params = self._where(dedupe)
                    cursor.execute(
                        f"SELECT txid, output_index FROM {table} WHERE {where} "
                        f"AND NOT (txid = ? AND output_index = ?) LIMIT 1",
                        params + [record.txid, record.output_index]
                    )
                    existing = cursor.fetchone()
                    if existing is not None:
                        self.conn.rollback()
                        logger.info(f"Registro duplicado en {table}: ya existe {existing[0][:8]}....{existing[1]}")
                        return False

                cursor.execute(f'''
                    INSERT OR REPLACE INTO {table} (txid, output_index, payload, created_at, spending_txid)
                    VALUES (?, ?, ?, ?, ?)
                ''', (
                    record.txid,
                    record.output_index,
                    json.dumps(record.payload, separators=(",", ":")),
                    _format_ts(record.created_at),
                    record.spending_txid
                ))
                self.conn.commit()
                return True
            except (sqlite3.Error, ValueError) as e:
                self.conn.rollback()
                logger.error(f"❌ Error guardando {record.reference} en {table}: {e}", exc_info=True)
                raise StorageBackendError(f"No se pudo guardar {record.reference}: {e}") from e

    def mark_spent(self, collection: IndexCollection, reference: OutputReference, spending_txid: str) -> bool:
        return self._write(
            collection,
            f"UPDATE {collection.name} SET spending_txid = ? WHERE txid = ? AND output_index = ?",
            (spending_txid, reference.txid, reference.output_index)
        )

    def delete(self, collection: IndexCollection, reference: OutputReference) -> bool:
        return self._write(
            collection,
            f"DELETE FROM {collection.name} WHERE txid = ? AND output_index = ?",
            (reference.txid, reference.output_index)
        )

    def _write(self, collection: IndexCollection, sql: str, params: Tuple[Any, ...]) -> bool:
        self.ensure_collection(collection)
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(sql, params)
                self.conn.commit()
                return cursor.rowcount > 0
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error(f"❌ Error de escritura en {collection.name}: {e}", exc_info=True)
                raise StorageBackendError(f"Error de escritura en {collection.name}: {e}") from e

    def clear(self, collection: IndexCollection) -> None:
        self._write(collection, f"DELETE FROM {collection.name}", ())
        logger.warning(f"⚠️ Colección {collection.name} vaciada.")

    # --- Consultas ---

    def get(self, collection: IndexCollection, reference: OutputReference) -> Optional[IndexedRecord]:
        rows = self._read(
            collection,
            f"SELECT txid, output_index, payload, created_at, spending_txid FROM {collection.name} "
            f"WHERE txid = ? AND output_index = ?",
            [reference.txid, reference.output_index]
        )
        return self._row_to_record(rows[0]) if rows else None

    def find(self, collection: IndexCollection, query: RecordQuery) -> List[IndexedRecord]:
        try:
            where, params = self._where(query.conditions)
            order_expr, order_params = self._expression(query.sort_field)
        except ValueError as e:
            raise StorageBackendError(f"Consulta no traducible: {e}") from e

        direction = "ASC" if query.sort_order == SortOrder.ASC else "DESC"
        sql = (
            f"SELECT txid, output_index, payload, created_at, spending_txid FROM {collection.name} "
            f"WHERE {where} ORDER BY {order_expr} {direction}, id {direction} LIMIT ? OFFSET ?"
        )
        limit = query.limit if query.limit is not None else -1
        rows = self._read(collection, sql, params + order_params + [limit, query.skip])
        return [self._row_to_record(row) for row in rows]

    def count(self, collection: IndexCollection) -> int:
        rows = self._read(collection, f"SELECT COUNT(*) FROM {collection.name}", [])
        return int(rows[0][0]) if rows else 0

    def _read(self, collection: IndexCollection, sql: str, params: List[Any]) -> List[Tuple[Any, ...]]:
        self.ensure_collection(collection)
        # Las lecturas usan la conexión del hilo, sin el lock de escritura
        try:
            cursor = self.db_manager.get_read_connection().cursor()
            cursor.execute(sql, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"❌ Error de lectura en {collection.name}: {e}", exc_info=True)
            raise StorageBackendError(f"Error de lectura en {collection.name}: {e}") from e
