# ovn/interface/api/dependencies.py
import logging
from typing import Optional

from ovn.core.nodes.overlay_node import OverlayNode

logger = logging.getLogger(__name__)

class NodeContainer:
    _instance: Optional[OverlayNode] = None

    @classmethod
    def get_instance(cls) -> OverlayNode:
        if cls._instance is None:
            logger.critical("🚨 ERROR DE ARRANQUE: El nodo no ha sido inicializado. Ejecute set_instance() primero.")
            raise RuntimeError("El nodo no ha sido inicializado. Ejecute set_instance() primero.")
        return cls._instance

    @classmethod
    def set_instance(cls, node_instance: OverlayNode) -> None:
        if cls._instance is not None:
            logger.debug("Instancia de nodo ya inyectada. Ignorando set_instance.")
            return

        cls._instance = node_instance
        logger.info(f"✅ [API-DI] Instancia de nodo '{type(node_instance).__name__}' inyectada correctamente.")

    @classmethod
    def shutdown(cls) -> None:
        if cls._instance:
            logger.info("🛑 [API] Liberando el nodo overlay...")
            cls._instance = None
        else:
            logger.debug("El nodo ya estaba detenido.")

def get_node_dependency() -> OverlayNode:
    return NodeContainer.get_instance()
