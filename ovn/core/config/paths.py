# ovn/core/config/paths.py

import os
from pathlib import Path

class Paths:
    """
    Centraliza las rutas absolutas del nodo overlay.
    Soporta Inyección de Dependencias vía Variables de Entorno.
    """

    _CODE_ROOT = Path(__file__).resolve().parent.parent.parent.parent

    # Si existe la variable de entorno, la usa. Si no, usa el default (_CODE_ROOT/data).
    DATA_DIR = Path(os.getenv("OVN_DATA_DIR", _CODE_ROOT / "data"))

    INDEX_DB_DIR = DATA_DIR / "index"
    LOGS_DIR = DATA_DIR / "logs"

    @staticmethod
    def ensure_directories_exist():
        """Crea la estructura de carpetas si no existe (se invoca al abrir la DB o los logs)."""
        os.makedirs(Paths.INDEX_DB_DIR, exist_ok=True)
        os.makedirs(Paths.LOGS_DIR, exist_ok=True)

        return {
            "root": str(Paths.DATA_DIR),
            "logs": str(Paths.LOGS_DIR)
        }
