# ovn/infra/persistence/repository_factory.py

import logging
from ovn.core.interfaces.i_lookup_repository import ILookupRepository
from ovn.core.config.config_manager import ConfigManager

from ovn.infra.persistence.sqlite.sqlite_lookup_repository import SqliteLookupRepository

logger = logging.getLogger(__name__)

class RepositoryFactory:

    @staticmethod
    def get_lookup_repository() -> ILookupRepository:
        """Factory para el índice de outputs admitidos."""
        config = ConfigManager()
        storage_type = config.persistence.storage_engine.lower()

        logger.info(f"🏗️  Índice DB: {storage_type.upper()}")

        if storage_type == "sqlite":
            return SqliteLookupRepository()
        else:
            error_msg = f"Motor '{storage_type}' no soportado para el índice."
            logger.error(f"❌ {error_msg}")
            raise ValueError(error_msg)
