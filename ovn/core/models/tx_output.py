# ovn/core/models/tx_output.py

import logging
from typing import Dict, Any, Union

logger = logging.getLogger(__name__)

class TxOutput:
    """
    Salida de transacción: script de bloqueo + satoshis.
    """

    def __init__(self, satoshis: int, locking_script: Union[str, bytes]):
        if satoshis < 0:
            raise ValueError("El valor del output no puede ser negativo.")

        self._satoshis: int = satoshis

        if isinstance(locking_script, (bytes, bytearray)):
            self._locking_script: bytes = bytes(locking_script)
        elif isinstance(locking_script, str):
            self._locking_script = bytes.fromhex(locking_script)
        else:
            raise TypeError(f"locking_script debe ser str (hex) o bytes. Recibido: {type(locking_script)}")

    @property
    def satoshis(self) -> int:
        return self._satoshis

    @property
    def locking_script(self) -> bytes:
        return self._locking_script

    def to_dict(self) -> Dict[str, Any]:
        return {
            "satoshis": self._satoshis,
            "lockingScript": self._locking_script.hex()
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'TxOutput':
        return TxOutput(
            satoshis=int(data.get("satoshis", 0)),
            locking_script=data.get("lockingScript", "")
        )

    def __repr__(self) -> str:
        return f"<TxOutput sats={self._satoshis} script={self._locking_script.hex()[:8]}...>"
