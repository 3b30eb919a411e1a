# ovn/core/factories/overlay_factory.py

import logging
from typing import List, Optional, Sequence

# Configuración
from ovn.core.config.config_manager import ConfigManager

# Infraestructura
from ovn.core.interfaces.i_lookup_repository import ILookupRepository
from ovn.infra.persistence.repository_factory import RepositoryFactory

# Gestores y motores
from ovn.core.managers.lookup_index import LookupIndex
from ovn.core.managers.lookup_service import LookupService
from ovn.core.protocols import registry
from ovn.core.protocols.protocol_definition import ProtocolDefinition
from ovn.core.validators.admission_engine import AdmissionEngine

# Nodo
from ovn.core.nodes.overlay_node import OverlayNode

logger = logging.getLogger(__name__)

class OverlayFactory:
    """
    Fábrica del nodo overlay.
    Por cada protocolo habilitado arma: política -> motor de admisión, colección -> índice -> servicio.
    """

    @staticmethod
    def enabled_definitions(definitions: Optional[Sequence[ProtocolDefinition]] = None) -> List[ProtocolDefinition]:
        admission = ConfigManager().admission
        candidates = definitions if definitions is not None else registry.all_definitions()
        return [d for d in candidates if admission.is_enabled(d.topic)]

    @staticmethod
    def create_node(
        repository: Optional[ILookupRepository] = None,
        definitions: Optional[Sequence[ProtocolDefinition]] = None
    ) -> OverlayNode:
        try:
            logger.info("🏭 OverlayFactory: ensamblando nodo overlay...")
            repository = repository if repository is not None else RepositoryFactory.get_lookup_repository()

            engines: List[AdmissionEngine] = []
            services: List[LookupService] = []
            for definition in OverlayFactory.enabled_definitions(definitions):
                engines.append(AdmissionEngine(definition.create_policy()))
                index = LookupIndex(repository, definition.collection)
                services.append(LookupService(definition, index))
                logger.info(f"   + {definition.topic} / {definition.service_id}")

            if not engines:
                logger.warning("⚠️ Ningún tópico habilitado (OVN_ENABLED_TOPICS).")

            return OverlayNode(engines, services)

        except Exception:
            logger.exception("Fallo al ensamblar el nodo overlay")
            raise
