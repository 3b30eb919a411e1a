# ovn/core/models/transaction.py

import logging
from typing import List, Dict, Any, Optional, Sequence

from ovn.core.models.tx_input import TxInput
from ovn.core.models.tx_output import TxOutput
from ovn.core.services.transaction_hasher import TransactionHasher

logger = logging.getLogger(__name__)

class Transaction:
    """
    Transacción parseada. Inmutable: el txid se calcula una única vez sobre la
    serialización cruda.
    """

    def __init__(
        self,
        inputs: Optional[Sequence[TxInput]] = None,
        outputs: Optional[Sequence[TxOutput]] = None,
        version: int = 1,
        lock_time: int = 0
    ) -> None:
        self._inputs: List[TxInput] = list(inputs) if inputs is not None else []
        self._outputs: List[TxOutput] = list(outputs) if outputs is not None else []
        self._version: int = version
        self._lock_time: int = lock_time
        self._txid: Optional[str] = None

    # --- Getters ---
    @property
    def inputs(self) -> List[TxInput]: return self._inputs[:]
    @property
    def outputs(self) -> List[TxOutput]: return self._outputs[:]
    @property
    def version(self) -> int: return self._version
    @property
    def lock_time(self) -> int: return self._lock_time

    @property
    def txid(self) -> str:
        if self._txid is None:
            self._txid = TransactionHasher.txid(self)
        return self._txid

    def output(self, index: int) -> Optional[TxOutput]:
        if 0 <= index < len(self._outputs):
            return self._outputs[index]
        return None

    def link_sources(self, sources: Dict[str, 'Transaction']) -> None:
        """Enlaza cada input a su transacción fuente (si está en `sources`). No altera el txid."""
        self._inputs = [
            inp.with_source(sources[inp.source_txid]) if inp.source_txid in sources else inp
            for inp in self._inputs
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txid": self.txid,
            "version": self._version,
            "inputs": [inp.to_dict() for inp in self._inputs],
            "outputs": [out.to_dict() for out in self._outputs],
            "lockTime": self._lock_time
        }

    def __repr__(self) -> str:
        return f"<Transaction {self.txid[:8]}... in={len(self._inputs)} out={len(self._outputs)}>"
