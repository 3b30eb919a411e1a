# ovn/core/config/persistence_config.py
import os
from typing import Dict, Any

from ovn.core.config.paths import Paths

MEMORY_DB = ":memory:"

class PersistenceConfig:
    """
    Configuración de Persistencia.
    Responsable de definir dónde se guarda el índice de outputs admitidos.
    """
    def __init__(self):
        self._storage_engine = os.getenv("OVN_STORAGE_ENGINE", "sqlite").lower()
        self._db_name = os.getenv("OVN_DB_NAME", "overlay_index.db")
        self._data_dir = str(Paths.DATA_DIR)
        self._timeout_sec = float(os.getenv("OVN_DB_TIMEOUT", 5.0))

    @property
    def db_name(self) -> str: return self._db_name
    @property
    def storage_engine(self) -> str: return self._storage_engine
    @property
    def data_dir(self) -> str: return self._data_dir
    @property
    def timeout_sec(self) -> float: return self._timeout_sec

    @property
    def is_memory(self) -> bool:
        return self._db_name == MEMORY_DB

    @property
    def db_path(self) -> str:
        """Ruta completa al archivo DB (data/index/nombre.db) o ':memory:'."""
        if self.is_memory:
            return MEMORY_DB
        return os.path.join(str(Paths.INDEX_DB_DIR), self._db_name)

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        """Actualiza la configuración desde un diccionario externo (JSON)."""
        if not data: return

        if "engine" in data:
            self._storage_engine = str(data["engine"]).lower()

        if "db_name" in data:
            self._db_name = str(data["db_name"])

        if "data_dir" in data:
            self._data_dir = str(data["data_dir"])

        if "timeout_sec" in data:
            self._timeout_sec = float(data["timeout_sec"])
