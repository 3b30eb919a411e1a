# ovn/infra/persistence/database_manager.py

import re
import sqlite3
import logging
import os
import itertools
import threading
from typing import List, Optional

from ovn.core.config.config_manager import ConfigManager

logger = logging.getLogger(__name__)

_MEMORY_SEQ = itertools.count()

def _regexp(pattern: Optional[str], value: Optional[str]) -> bool:
    """Función REGEXP de sqlite (sin mayúsculas). NULL nunca coincide."""
    if pattern is None or value is None:
        return False
    return re.search(pattern, str(value), re.IGNORECASE) is not None


class DatabaseManager:
    """
    Conexión de escritura única (Singleton) al índice sqlite, más una conexión
    de lectura por hilo que nunca toma el lock de escritura.
    El nombre ':memory:' abre una base en memoria compartida, útil para tests.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(DatabaseManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        config = ConfigManager().persistence
        self.db_path = config.db_path
        self.is_memory = config.is_memory
        self.timeout_sec = config.timeout_sec

        if self.is_memory:
            # Misma base para el escritor y los lectores mientras viva el escritor
            self._target = f"file:ovn_mem_{os.getpid()}_{next(_MEMORY_SEQ)}?mode=memory&cache=shared"
        else:
            directory = os.path.dirname(self.db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._target = self.db_path

        logger.info(f"🔌 Conectando al índice: {self.db_path}")

        self.conn = self._open(self._target)

        # Serializa solo las escrituras sobre la conexión compartida
        self.lock = threading.RLock()

        self._local = threading.local()
        self._readers: List[sqlite3.Connection] = []
        self._readers_lock = threading.Lock()

        if not self.is_memory:
            try:
                self.conn.execute("PRAGMA journal_mode=WAL;")
                self.conn.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.Error as e:
                logger.warning(f"No se pudo configurar PRAGMA: {e}")

    def _open(self, target: str) -> sqlite3.Connection:
        conn = sqlite3.connect(
            target, timeout=self.timeout_sec, check_same_thread=False, uri=self.is_memory
        )
        conn.create_function("REGEXP", 2, _regexp, deterministic=True)
        return conn

    def get_connection(self) -> sqlite3.Connection:
        return self.conn

    def get_read_connection(self) -> sqlite3.Connection:
        """Conexión de lectura del hilo actual (se abre en el primer uso)."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._open(self._target)
            if self.is_memory:
                # Con caché compartida, leer sin esperar a los locks de tabla del escritor
                conn.execute("PRAGMA read_uncommitted=1;")
            self._local.conn = conn
            with self._readers_lock:
                self._readers.append(conn)
        return conn

    def close(self):
        with self._readers_lock:
            readers, self._readers = self._readers, []
        for reader in readers:
            try:
                reader.close()
            except sqlite3.Error as e:
                logger.warning(f"Error cerrando una conexión de lectura: {e}")
        if self.conn:
            try:
                self.conn.close()
                logger.info("🔌 Conexión a DB cerrada.")
            except sqlite3.Error as e:
                logger.warning(f"Error cerrando la conexión: {e}")

    @classmethod
    def reset(cls):
        if cls._instance:
            cls._instance.close()
            cls._instance = None
