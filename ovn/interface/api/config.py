# ovn/interface/api/config.py

import os
import logging
from dataclasses import dataclass

from ovn.core.config.config_manager import ConfigManager

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ApiConfig:
    host: str
    port: int
    title: str
    version: str
    storage_engine: str
    debug_mode: bool

    @classmethod
    def load(cls) -> 'ApiConfig':

        # 1. Leemos del entorno (Infraestructura)
        host = os.getenv("OVN_API_HOST", "0.0.0.0")
        port = int(os.getenv("OVN_API_PORT", 8080))
        title = os.getenv("OVN_API_TITLE", "Overlay Node API")
        version = "0.1.0"
        debug = os.getenv("OVN_DEBUG", "False").lower() == "true"

        # 2. Leemos del Núcleo
        storage_engine = ConfigManager().persistence.storage_engine

        config = cls(
            host=host,
            port=port,
            title=title,
            version=version,
            storage_engine=storage_engine,
            debug_mode=debug
        )

        logger.info("⚙️  Configuración de la API cargada:")
        logger.info(f"   URL: http://{config.host}:{config.port}")
        logger.info(f"   Título: {config.title} v{config.version}")
        logger.debug(f"   Debug: {config.debug_mode} | Índice: {config.storage_engine}")

        return config

# Instancia Singleton inmutable
settings = ApiConfig.load()
