# ovn/core/models/admitted_output.py

from typing import Optional, Union

from ovn.core.models.output_reference import OutputReference

class AdmittedOutput:
    """
    Notificación 'output admitido' del dispatcher hacia el índice:
    referencia + tópico + script de bloqueo crudo (+ valores off-chain opcionales).
    """

    def __init__(
        self,
        txid: str,
        output_index: int,
        topic: str,
        locking_script: Union[str, bytes],
        satoshis: int = 0,
        off_chain_values: Optional[bytes] = None
    ) -> None:
        self._reference = OutputReference(txid, output_index)
        self._topic = topic
        self._locking_script = (
            bytes.fromhex(locking_script) if isinstance(locking_script, str) else bytes(locking_script)
        )
        self._satoshis = satoshis
        self._off_chain_values = bytes(off_chain_values) if off_chain_values is not None else None

    @property
    def reference(self) -> OutputReference: return self._reference
    @property
    def txid(self) -> str: return self._reference.txid
    @property
    def output_index(self) -> int: return self._reference.output_index
    @property
    def topic(self) -> str: return self._topic
    @property
    def locking_script(self) -> bytes: return self._locking_script
    @property
    def satoshis(self) -> int: return self._satoshis
    @property
    def off_chain_values(self) -> Optional[bytes]: return self._off_chain_values

    def __repr__(self) -> str:
        return f"<AdmittedOutput {self._topic} {self._reference}>"
