# ovn/core/models/indexed_record.py

import json
from datetime import datetime
from typing import Dict, Any, Optional

from ovn.core.models.output_reference import OutputReference

class IndexedRecord:
    """Registro de un output admitido: payload específico del protocolo + metadatos de ciclo de vida."""

    def __init__(
        self,
        reference: OutputReference,
        payload: Dict[str, Any],
        created_at: datetime,
        spending_txid: Optional[str] = None
    ) -> None:
        self._reference = reference
        self._payload = payload
        self._created_at = created_at
        self._spending_txid = spending_txid

    @property
    def reference(self) -> OutputReference: return self._reference
    @property
    def txid(self) -> str: return self._reference.txid
    @property
    def output_index(self) -> int: return self._reference.output_index
    @property
    def payload(self) -> Dict[str, Any]: return json.loads(json.dumps(self._payload))
    @property
    def created_at(self) -> datetime: return self._created_at
    @property
    def spending_txid(self) -> Optional[str]: return self._spending_txid

    @property
    def is_spent(self) -> bool:
        return self._spending_txid is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = self.payload
        data.update({
            "txid": self.txid,
            "outputIndex": self.output_index,
            "createdAt": self._created_at.isoformat(),
        })
        if self._spending_txid is not None:
            data["spendingTxid"] = self._spending_txid
        return data

    def __repr__(self) -> str:
        return f"<IndexedRecord {self._reference} spent={self.is_spent}>"
