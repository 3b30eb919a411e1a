# ovn/core/scripting/script.py

import struct
import logging
from typing import List, Optional, Sequence, Union

from ovn.core.scripting.opcodes import Opcodes, CONDITIONAL_OPENERS

logger = logging.getLogger(__name__)

class MalformedScriptError(ValueError):
    """El script no puede decodificarse (longitudes truncadas, estructura inesperada)."""
    pass


class ScriptChunk:
    """
    Una instrucción del script: opcode + datos empujados (si los hay).
    Para OP_RETURN fuera de un bloque condicional, `data` contiene el resto del script.
    """

    __slots__ = ("_op", "_data")

    def __init__(self, op: int, data: Optional[bytes] = None) -> None:
        self._op = op
        self._data = data

    @property
    def op(self) -> int: return self._op
    @property
    def data(self) -> Optional[bytes]: return self._data

    @property
    def is_push(self) -> bool:
        return self._op <= Opcodes.OP_PUSHDATA4

    def push_value(self) -> Optional[bytes]:
        """
        Valor empujado a la pila, incluyendo las formas mínimas OP_0, OP_1..OP_16 y OP_1NEGATE.
        None si el chunk no es un push.
        """
        if self._op == Opcodes.OP_0:
            return b''
        if self.is_push:
            return self._data if self._data is not None else b''
        if Opcodes.OP_1 <= self._op <= Opcodes.OP_16:
            return bytes([self._op - Opcodes.OP_1 + 1])
        if self._op == Opcodes.OP_1NEGATE:
            return b'\x81'
        return None

    def to_bytes(self) -> bytes:
        """Serialización fiel (respeta la codificación de push original)."""
        op = self._op
        if op == Opcodes.OP_RETURN:
            return bytes([op]) + (self._data or b'')
        if self._data is None or op == Opcodes.OP_0:
            return bytes([op])
        size = len(self._data)
        if op == Opcodes.OP_PUSHDATA1:
            return bytes([op, size]) + self._data
        if op == Opcodes.OP_PUSHDATA2:
            return bytes([op]) + struct.pack('<H', size) + self._data
        if op == Opcodes.OP_PUSHDATA4:
            return bytes([op]) + struct.pack('<I', size) + self._data
        return bytes([op]) + self._data

    def canonical_bytes(self) -> bytes:
        """Serialización con push mínimo; tolera codificaciones alternativas del mismo dato."""
        value = self.push_value()
        if value is not None:
            return minimal_push(value)
        return self.to_bytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScriptChunk):
            return NotImplemented
        return self._op == other._op and self._data == other._data

    def __hash__(self) -> int:
        return hash((self._op, self._data))

    def __repr__(self) -> str:
        if self._data is not None:
            return f"<ScriptChunk {Opcodes.get_name(self._op)} {self._data.hex()[:16]}>"
        return f"<ScriptChunk {Opcodes.get_name(self._op)}>"


def minimal_push(data: bytes) -> bytes:
    """Codificación de push mínima para `data`."""
    size = len(data)
    if size == 0:
        return bytes([Opcodes.OP_0])
    if size == 1 and 1 <= data[0] <= 16:
        return bytes([Opcodes.OP_1 + data[0] - 1])
    if size == 1 and data[0] == 0x81:
        return bytes([Opcodes.OP_1NEGATE])
    if size <= 0x4b:
        return bytes([size]) + data
    if size <= 0xff:
        return bytes([Opcodes.OP_PUSHDATA1, size]) + data
    if size <= 0xffff:
        return bytes([Opcodes.OP_PUSHDATA2]) + struct.pack('<H', size) + data
    return bytes([Opcodes.OP_PUSHDATA4]) + struct.pack('<I', size) + data


def push_chunk(data: bytes) -> ScriptChunk:
    """Chunk equivalente a minimal_push(data)."""
    return Script.from_bytes(minimal_push(data)).chunks[0]


class Script:
    """
    Script de bloqueo decodificado en chunks.
    Inmutable: se construye una vez a partir de bytes o de una lista de chunks.
    """

    def __init__(self, chunks: Sequence[ScriptChunk]) -> None:
        self._chunks: List[ScriptChunk] = list(chunks)

    @property
    def chunks(self) -> List[ScriptChunk]:
        return self._chunks[:]

    def __len__(self) -> int:
        return len(self._chunks)

    def __getitem__(self, index: int) -> ScriptChunk:
        return self._chunks[index]

    @staticmethod
    def from_bytes(raw: Union[bytes, bytearray]) -> 'Script':
        raw = bytes(raw)
        chunks: List[ScriptChunk] = []
        pointer = 0
        depth = 0

        while pointer < len(raw):
            opcode = raw[pointer]
            pointer += 1

            # OP_RETURN fuera de condicionales: el resto del script son datos
            if opcode == Opcodes.OP_RETURN and depth == 0:
                rest = raw[pointer:]
                chunks.append(ScriptChunk(opcode, rest if rest else None))
                break

            if opcode in CONDITIONAL_OPENERS:
                depth += 1
            elif opcode == Opcodes.OP_ENDIF and depth > 0:
                depth -= 1

            if 0x01 <= opcode <= 0x4b:
                n_bytes = opcode
            elif opcode == Opcodes.OP_PUSHDATA1:
                if pointer + 1 > len(raw):
                    raise MalformedScriptError("PUSHDATA1 sin byte de longitud.")
                n_bytes = raw[pointer]
                pointer += 1
            elif opcode == Opcodes.OP_PUSHDATA2:
                if pointer + 2 > len(raw):
                    raise MalformedScriptError("PUSHDATA2 sin longitud completa.")
                n_bytes = struct.unpack('<H', raw[pointer:pointer + 2])[0]
                pointer += 2
            elif opcode == Opcodes.OP_PUSHDATA4:
                if pointer + 4 > len(raw):
                    raise MalformedScriptError("PUSHDATA4 sin longitud completa.")
                n_bytes = struct.unpack('<I', raw[pointer:pointer + 4])[0]
                pointer += 4
            else:
                chunks.append(ScriptChunk(opcode))
                continue

            if pointer + n_bytes > len(raw):
                raise MalformedScriptError(
                    f"PUSHDATA fuera de límites: se esperaban {n_bytes} bytes, quedan {len(raw) - pointer}."
                )
            chunks.append(ScriptChunk(opcode, raw[pointer:pointer + n_bytes]))
            pointer += n_bytes

        return Script(chunks)

    @staticmethod
    def from_hex(script_hex: str) -> 'Script':
        try:
            return Script.from_bytes(bytes.fromhex(script_hex))
        except ValueError as e:
            if isinstance(e, MalformedScriptError):
                raise
            raise MalformedScriptError(f"Hex inválido: {e}")

    def to_bytes(self) -> bytes:
        return b''.join(chunk.to_bytes() for chunk in self._chunks)

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    def to_asm(self) -> str:
        parts: List[str] = []
        for chunk in self._chunks:
            if chunk.op == Opcodes.OP_0:
                parts.append("OP_0")
            elif chunk.data is not None:
                if chunk.op == Opcodes.OP_RETURN:
                    parts.append("OP_RETURN")
                parts.append(chunk.data.hex())
            else:
                parts.append(Opcodes.get_name(chunk.op))
        return " ".join(parts)

    def has_opcode(self, opcode: int) -> bool:
        return any(chunk.op == opcode for chunk in self._chunks)

    def contains(self, other: 'Script') -> bool:
        """True si la secuencia de chunks de `other` aparece contigua dentro de este script."""
        needle = other._chunks
        if not needle:
            return True
        limit = len(self._chunks) - len(needle)
        for start in range(limit + 1):
            if self._chunks[start:start + len(needle)] == needle:
                return True
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Script):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"<Script {self.to_asm()[:60]}>"
