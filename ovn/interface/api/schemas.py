# ovn/interface/api/schemas.py
from pydantic import Field, field_validator
from typing import Any, Dict, List, Optional

from ovn.core.models.immutable_model import ImmutableModel

# --- ADMISIÓN ---

class SubmitRequest(ImmutableModel):
    topic: str = Field(..., description="Tópico destino (ej. tm_identity)")
    beef: str = Field(..., description="Transacción en formato BEEF (hex)")
    previous_coins: List[int] = Field(default_factory=list, alias="previousCoins")
    off_chain_values: Optional[str] = Field(None, alias="offChainValues", description="Valores off-chain (hex)")

    @field_validator("beef", "off_chain_values")
    @classmethod
    def _is_hex(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            bytes.fromhex(value)
        return value

    @field_validator("previous_coins")
    @classmethod
    def _non_negative(cls, value: List[int]) -> List[int]:
        if any(index < 0 for index in value):
            raise ValueError("previousCoins no admite índices negativos")
        return value

    def beef_bytes(self) -> bytes:
        return bytes.fromhex(self.beef)

    def off_chain_bytes(self) -> Optional[bytes]:
        return bytes.fromhex(self.off_chain_values) if self.off_chain_values is not None else None

class SubmitResponse(ImmutableModel):
    outputs_to_admit: List[int] = Field(..., alias="outputsToAdmit")
    coins_to_retain: List[int] = Field(..., alias="coinsToRetain")
    rejections: Dict[str, str] = Field(default_factory=dict)
    transaction_reason: Optional[str] = Field(None, alias="transactionReason")

# --- CONSULTAS ---

class LookupRequest(ImmutableModel):
    service: str
    query: Optional[Any] = None

# --- CICLO DE VIDA ---

class SpentRequest(ImmutableModel):
    topic: str
    txid: str
    output_index: int = Field(..., alias="outputIndex", ge=0)
    spending_txid: Optional[str] = Field(None, alias="spendingTxid")

class EvictRequest(ImmutableModel):
    topic: str
    txid: str
    output_index: int = Field(..., alias="outputIndex", ge=0)

class LifecycleResponse(ImmutableModel):
    txid: str
    output_index: int = Field(..., alias="outputIndex")
    changed: bool

# --- ESTADO ---

class HealthResponse(ImmutableModel):
    status: str
    topics: int
    services: int
