# ovn/core/models/tx_input.py

import logging
from typing import Dict, Any, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from ovn.core.models.transaction import Transaction
    from ovn.core.models.tx_output import TxOutput

logger = logging.getLogger(__name__)

class TxInput:
    """
    Entrada: referencia (source_txid, source_output_index) a un output previo.
    Puede transportar la transacción fuente completa cuando viene en el bundle BEEF.
    """

    def __init__(
        self,
        source_txid: str,
        source_output_index: int,
        unlocking_script: Union[str, bytes] = b'',
        sequence: int = 0xFFFFFFFF,
        source_transaction: Optional['Transaction'] = None
    ) -> None:
        if not source_txid or len(source_txid) != 64:
            raise ValueError("Referencia a txid previo inválida.")
        if source_output_index < 0:
            raise ValueError("Índice de output negativo.")

        self._source_txid: str = source_txid.lower()
        self._source_output_index: int = source_output_index
        self._unlocking_script: bytes = (
            bytes.fromhex(unlocking_script) if isinstance(unlocking_script, str) else bytes(unlocking_script)
        )
        self._sequence: int = sequence
        self._source_transaction = source_transaction

    # --- Getters ---
    @property
    def source_txid(self) -> str: return self._source_txid
    @property
    def source_output_index(self) -> int: return self._source_output_index
    @property
    def unlocking_script(self) -> bytes: return self._unlocking_script
    @property
    def sequence(self) -> int: return self._sequence
    @property
    def source_transaction(self) -> Optional['Transaction']: return self._source_transaction

    def with_source(self, source_transaction: 'Transaction') -> 'TxInput':
        """Copia del input enlazada a su transacción fuente."""
        return TxInput(
            self._source_txid, self._source_output_index, self._unlocking_script,
            self._sequence, source_transaction
        )

    @property
    def source_output(self) -> Optional['TxOutput']:
        """Output consumido, si la transacción fuente está disponible."""
        if self._source_transaction is None:
            return None
        outputs = self._source_transaction.outputs
        if self._source_output_index >= len(outputs):
            return None
        return outputs[self._source_output_index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceTXID": self._source_txid,
            "sourceOutputIndex": self._source_output_index,
            "unlockingScript": self._unlocking_script.hex(),
            "sequence": self._sequence
        }

    def __repr__(self) -> str:
        return f"<TxInput {self._source_txid[:8]}...:{self._source_output_index}>"
