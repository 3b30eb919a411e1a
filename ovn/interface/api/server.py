# ovn/interface/api/server.py

import sys
import os
import logging
from typing import Any, Dict

# --- Configuración de Path ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_dir, '../../..'))
if project_root not in sys.path: sys.path.insert(0, project_root)

# --- Framework Imports ---
from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

# --- Project Imports ---
from ovn.interface.api import schemas
from ovn.interface.api.dependencies import NodeContainer, get_node_dependency
from ovn.interface.api.config import settings
from ovn.core.factories.overlay_factory import OverlayFactory
from ovn.core.interfaces.i_lookup_repository import StorageBackendError
from ovn.core.models.lookup_query import LookupQueryError, LookupQuestion
from ovn.core.models.output_reference import OutputReference
from ovn.core.nodes.overlay_node import OverlayNode, UnknownTopicError

logger = logging.getLogger(__name__)

# ==============================================================================
# 🏗️ SERVICE LAYER
# ==============================================================================

class OverlayService:
    def __init__(self, node: OverlayNode):
        self.node = node

    def submit(self, req: schemas.SubmitRequest) -> schemas.SubmitResponse:
        try:
            result = self.node.submit(req.topic, req.beef_bytes(), req.previous_coins, req.off_chain_bytes())
        except UnknownTopicError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        return schemas.SubmitResponse(
            outputs_to_admit=result.outputs_to_admit,
            coins_to_retain=result.coins_to_retain,
            rejections={str(index): reason.value for index, reason in result.rejections.items()},
            transaction_reason=result.transaction_reason.value if result.transaction_reason else None
        )

    def lookup(self, req: schemas.LookupRequest) -> Any:
        try:
            return self.node.lookup(LookupQuestion(service=req.service, query=req.query))
        except LookupQueryError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except StorageBackendError as e:
            logger.error(f"❌ Índice no disponible: {e}")
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Índice no disponible.")

    def spent(self, req: schemas.SpentRequest) -> schemas.LifecycleResponse:
        try:
            reference = OutputReference(req.txid, req.output_index)
            changed = self.node.spend(req.topic, reference, req.spending_txid)
        except StorageBackendError as e:
            logger.error(f"❌ Índice no disponible: {e}")
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Índice no disponible.")
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return schemas.LifecycleResponse(txid=reference.txid, output_index=reference.output_index, changed=changed)

    def evict(self, req: schemas.EvictRequest) -> schemas.LifecycleResponse:
        try:
            reference = OutputReference(req.txid, req.output_index)
            changed = self.node.evict(req.topic, reference)
        except StorageBackendError as e:
            logger.error(f"❌ Índice no disponible: {e}")
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Índice no disponible.")
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return schemas.LifecycleResponse(txid=reference.txid, output_index=reference.output_index, changed=changed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🛰️ [BOOT] Iniciando nodo overlay...")
    try:
        node = OverlayFactory.create_node()
        NodeContainer.set_instance(node)
    except Exception as e:
        logger.critical(f"❌ Error fatal al iniciar el nodo: {e}")
        raise
    try:
        yield
    finally:
        logger.info("🛑 Apagando nodo overlay...")
        NodeContainer.shutdown()

app = FastAPI(title=settings.title, version=settings.version, lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"])

def get_overlay_service(node: OverlayNode = Depends(get_node_dependency)) -> OverlayService:
    return OverlayService(node)

@app.get("/health", response_model=schemas.HealthResponse, tags=["Sistema"])
def health(node: OverlayNode = Depends(get_node_dependency)):
    return schemas.HealthResponse(status="ok", topics=len(node.list_topics()), services=len(node.list_services()))

@app.get("/topics", tags=["Sistema"])
def list_topics(node: OverlayNode = Depends(get_node_dependency)) -> Dict[str, Dict[str, str]]:
    return node.list_topics()

@app.get("/services", tags=["Sistema"])
def list_services(node: OverlayNode = Depends(get_node_dependency)) -> Dict[str, Dict[str, str]]:
    return node.list_services()

@app.post("/submit", response_model=schemas.SubmitResponse, tags=["Admisión"])
def submit(req: schemas.SubmitRequest, service: OverlayService = Depends(get_overlay_service)):
    return service.submit(req)

@app.post("/lookup", tags=["Consultas"])
def lookup(req: schemas.LookupRequest, service: OverlayService = Depends(get_overlay_service)) -> Any:
    return service.lookup(req)

@app.post("/spent", response_model=schemas.LifecycleResponse, tags=["Ciclo de vida"])
def spent(req: schemas.SpentRequest, service: OverlayService = Depends(get_overlay_service)):
    return service.spent(req)

@app.post("/evict", response_model=schemas.LifecycleResponse, tags=["Ciclo de vida"])
def evict(req: schemas.EvictRequest, service: OverlayService = Depends(get_overlay_service)):
    return service.evict(req)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
