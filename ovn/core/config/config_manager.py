# ovn/core/config/config_manager.py
'''
class ConfigManager:
    Orquesta y centraliza el acceso a la configuración de todos los módulos (Persistencia, Consultas y Admisión), cargando valores desde el entorno o JSON.

    Methods:
        __new__(cls): Implementa el patrón Singleton para asegurar una única instancia.
        _initialize(self): Inicializa y carga las configuraciones especializadas con valores por defecto/entorno.
        load_from_json_dict(self, json_data: Dict[str, Any]) -> None: Actualiza todas las sub-configuraciones a partir de un diccionario JSON completo.
        reset(cls): Descarta la instancia (Tests).

'''

from dotenv import load_dotenv
from typing import Dict, Any

# Cargar variables de entorno si existen
load_dotenv()

from ovn.core.config.persistence_config import PersistenceConfig
from ovn.core.config.lookup_config import LookupConfig
from ovn.core.config.admission_config import AdmissionConfig

class ConfigManager:

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._persistence = PersistenceConfig()  # Base de datos
        self._lookup = LookupConfig()            # Paginación / locks
        self._admission = AdmissionConfig()      # Tópicos habilitados

    def load_from_json_dict(self, json_data: Dict[str, Any]) -> None:

        if "storage" in json_data:
            self._persistence.update_from_dict(json_data["storage"])

        if "lookup" in json_data:
            self._lookup.update_from_dict(json_data["lookup"])

        if "admission" in json_data:
            self._admission.update_from_dict(json_data["admission"])

    @classmethod
    def reset(cls):
        cls._instance = None

    # --- ACCESORES ORGANIZADOS ---

    @property
    def persistence(self) -> PersistenceConfig:
        return self._persistence

    @property
    def lookup(self) -> LookupConfig:
        return self._lookup

    @property
    def admission(self) -> AdmissionConfig:
        return self._admission

    # --- Atajos ---
    @property
    def default_limit(self) -> int: return self._lookup.default_limit
    @property
    def max_limit(self) -> int: return self._lookup.max_limit
