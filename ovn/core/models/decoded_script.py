# ovn/core/models/decoded_script.py

from typing import List, Optional, Tuple, Sequence

class DecodedScript:
    """
    Resultado de decodificar un script PushDrop:
    campos opacos (en orden de script) + clave pública del emisor.
    """

    def __init__(self, fields: Sequence[bytes], embedder_key: Optional[bytes] = None) -> None:
        self._fields: Tuple[bytes, ...] = tuple(bytes(f) for f in fields)
        self._embedder_key = bytes(embedder_key) if embedder_key is not None else None

    @property
    def fields(self) -> List[bytes]:
        return list(self._fields)

    @property
    def embedder_key(self) -> Optional[bytes]:
        return self._embedder_key

    @property
    def embedder_key_hex(self) -> Optional[str]:
        return self._embedder_key.hex() if self._embedder_key is not None else None

    def field(self, index: int) -> Optional[bytes]:
        if 0 <= index < len(self._fields):
            return self._fields[index]
        return None

    def split_signature(self) -> Tuple[List[bytes], bytes]:
        """Separa (campos de datos, firma). La firma es por convención el último campo."""
        if not self._fields:
            raise ValueError("El script no contiene campos.")
        return list(self._fields[:-1]), self._fields[-1]

    def signed_payload(self) -> bytes:
        """Concatenación de todos los campos salvo la firma."""
        data_fields, _ = self.split_signature()
        return b''.join(data_fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DecodedScript):
            return NotImplemented
        return self._fields == other._fields and self._embedder_key == other._embedder_key

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        key = self.embedder_key_hex[:8] if self._embedder_key else "-"
        return f"<DecodedScript fields={len(self._fields)} key={key}...>"
