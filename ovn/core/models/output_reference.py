# ovn/core/models/output_reference.py

import re
from dataclasses import dataclass
from typing import Dict, Any

_TXID_RE = re.compile(r'^[0-9a-fA-F]{64}$')

@dataclass(frozen=True, order=True)
class OutputReference:
    """Clave única (txid, outputIndex) de todo registro indexado."""

    txid: str
    output_index: int

    def __post_init__(self) -> None:
        if not _TXID_RE.match(self.txid or ""):
            raise ValueError(f"txid inválido: {self.txid!r}")
        if self.output_index < 0:
            raise ValueError("outputIndex no puede ser negativo.")
        object.__setattr__(self, "txid", self.txid.lower())

    @staticmethod
    def parse(outpoint: str) -> 'OutputReference':
        """Acepta 'txid.vout' o 'txid:vout'."""
        for sep in (".", ":"):
            if sep in outpoint:
                txid, _, index = outpoint.rpartition(sep)
                if index.isdigit():
                    return OutputReference(txid, int(index))
        raise ValueError(f"Outpoint inválido: {outpoint!r}")

    @property
    def outpoint(self) -> str:
        return f"{self.txid}.{self.output_index}"

    def to_dict(self) -> Dict[str, Any]:
        return {"txid": self.txid, "outputIndex": self.output_index}

    def __str__(self) -> str:
        return self.outpoint
