# ovn/core/scripting/templates.py
'''
Plantillas de script de forma fija.

Cada plantilla es una secuencia de ranuras (slots). Para comparar, los datos variables
(hash, clave, payload) se reemplazan por marcadores canónicos de longitud fija, se
re-serializa con pushes mínimos y se compara byte a byte contra la plantilla.

    match_template(script, template_id) -> bool
    extract_template_data(script, template_id) -> List[bytes]
'''

import logging
from typing import Dict, List, Optional, Sequence, Union

from ovn.core.scripting.opcodes import Opcodes as Op
from ovn.core.scripting.script import Script, ScriptChunk, MalformedScriptError, minimal_push

logger = logging.getLogger(__name__)

# Marcador de push variable: PUSHDATA1 de longitud 0 (nunca aparece en una serialización mínima)
_VARIABLE_MARKER = bytes([Op.OP_PUSHDATA1, 0x00])


class Slot:
    """Posición de la plantilla."""

    captures = False

    def expected(self) -> bytes:
        raise NotImplementedError

    def normalize(self, chunk: ScriptChunk) -> Optional[bytes]:
        """Bytes canónicos del chunk en esta posición, o None si no puede ocupar la ranura."""
        return chunk.canonical_bytes()


class OpSlot(Slot):

    def __init__(self, op: int) -> None:
        self.op = op

    def expected(self) -> bytes:
        return ScriptChunk(self.op).canonical_bytes()


class LiteralSlot(Slot):
    """Push de un valor concreto (ej. 'ord')."""

    def __init__(self, value: bytes) -> None:
        self.value = value

    def expected(self) -> bytes:
        return minimal_push(self.value)


class DataSlot(Slot):
    """Push de datos variables. `length` fija el tamaño exacto; si es None, basta con min_length."""

    captures = True

    def __init__(self, length: Optional[int] = None, min_length: int = 0) -> None:
        self.length = length
        self.min_length = min_length

    def _placeholder(self) -> bytes:
        if self.length is None:
            return _VARIABLE_MARKER
        return minimal_push(b'\x00' * self.length)

    def expected(self) -> bytes:
        return self._placeholder()

    def normalize(self, chunk: ScriptChunk) -> Optional[bytes]:
        value = chunk.push_value()
        if value is None:
            return None
        if self.length is not None and len(value) != self.length:
            return None
        if len(value) < self.min_length:
            return None
        return self._placeholder()


class ReturnDataSlot(Slot):
    """OP_RETURN seguido de datos (el resto del script)."""

    captures = True

    def __init__(self, length: Optional[int] = None, min_length: int = 1) -> None:
        self.length = length
        self.min_length = min_length

    def expected(self) -> bytes:
        return bytes([Op.OP_RETURN]) + _VARIABLE_MARKER

    def normalize(self, chunk: ScriptChunk) -> Optional[bytes]:
        if chunk.op != Op.OP_RETURN:
            return None
        data = chunk.data or b''
        if self.length is not None and len(data) != self.length:
            return None
        if len(data) < self.min_length:
            return None
        return self.expected()


class ScriptTemplate:

    def __init__(self, template_id: str, slots: Sequence[Slot]) -> None:
        self._template_id = template_id
        self._slots: List[Slot] = list(slots)
        self._canonical = b''.join(slot.expected() for slot in self._slots)

    @property
    def template_id(self) -> str:
        return self._template_id

    def _normalized(self, script: Script) -> Optional[List[bytes]]:
        chunks = script.chunks
        if len(chunks) != len(self._slots):
            return None
        normalized: List[bytes] = []
        for slot, chunk in zip(self._slots, chunks):
            piece = slot.normalize(chunk)
            if piece is None:
                return None
            normalized.append(piece)
        return normalized

    def matches(self, script: Script) -> bool:
        normalized = self._normalized(script)
        if normalized is None:
            return False
        return b''.join(normalized) == self._canonical

    def extract(self, script: Script) -> List[bytes]:
        """Datos de las ranuras variables, en orden. Lanza MalformedScriptError si no coincide."""
        if not self.matches(script):
            raise MalformedScriptError(f"El script no coincide con la plantilla '{self._template_id}'.")
        captured: List[bytes] = []
        for slot, chunk in zip(self._slots, script.chunks):
            if not slot.captures:
                continue
            if isinstance(slot, ReturnDataSlot):
                captured.append(chunk.data or b'')
            else:
                captured.append(chunk.push_value() or b'')
        return captured


def _ordinal_envelope(content_type: bytes) -> List[Slot]:
    return [
        OpSlot(Op.OP_0), OpSlot(Op.OP_IF),
        LiteralSlot(b'ord'), OpSlot(Op.OP_1), LiteralSlot(content_type),
        OpSlot(Op.OP_0), DataSlot(min_length=1),
        OpSlot(Op.OP_ENDIF),
    ]

_MULTISIG_TAIL: List[Slot] = [
    OpSlot(Op.OP_2DUP), OpSlot(Op.OP_CAT), OpSlot(Op.OP_HASH160), DataSlot(20), OpSlot(Op.OP_EQUALVERIFY),
    OpSlot(Op.OP_TOALTSTACK), OpSlot(Op.OP_TOALTSTACK), OpSlot(Op.OP_1),
    OpSlot(Op.OP_FROMALTSTACK), OpSlot(Op.OP_FROMALTSTACK), OpSlot(Op.OP_2), OpSlot(Op.OP_CHECKMULTISIG),
]

_P2PKH: List[Slot] = [
    OpSlot(Op.OP_DUP), OpSlot(Op.OP_HASH160), DataSlot(20), OpSlot(Op.OP_EQUALVERIFY), OpSlot(Op.OP_CHECKSIG),
]

TEMPLATES: Dict[str, ScriptTemplate] = {
    t.template_id: t for t in (
        ScriptTemplate("p2pkh", _P2PKH),
        ScriptTemplate("sha256-lock", [OpSlot(Op.OP_SHA256), DataSlot(32), OpSlot(Op.OP_EQUAL)]),
        ScriptTemplate("payment", _MULTISIG_TAIL),
        ScriptTemplate("server-token", _ordinal_envelope(b'application/bsv-20') + _MULTISIG_TAIL + [ReturnDataSlot()]),
        ScriptTemplate("transfer-token", _ordinal_envelope(b'application/bsv-20') + _P2PKH + [ReturnDataSlot()]),
        ScriptTemplate("ordinal-transfer", _ordinal_envelope(b'application/bsv-21') + _P2PKH + [ReturnDataSlot()]),
        ScriptTemplate("pushdrop-pair", [
            DataSlot(min_length=1), DataSlot(min_length=1), OpSlot(Op.OP_2DROP), DataSlot(33), OpSlot(Op.OP_CHECKSIG),
        ]),
        ScriptTemplate("op-return-hash", [OpSlot(Op.OP_0), ReturnDataSlot(length=33)]),
    )
}


def get_template(template_id: str) -> ScriptTemplate:
    template = TEMPLATES.get(template_id)
    if template is None:
        raise KeyError(f"Plantilla desconocida: {template_id}")
    return template


def _as_script(script: Union[bytes, Script]) -> Script:
    return script if isinstance(script, Script) else Script.from_bytes(script)


def match_template(script: Union[bytes, Script], template_id: str) -> bool:
    """
    True si el script tiene exactamente la forma de la plantilla.
    Un script que ni siquiera se puede decodificar lanza MalformedScriptError.
    """
    return get_template(template_id).matches(_as_script(script))


def extract_template_data(script: Union[bytes, Script], template_id: str) -> List[bytes]:
    return get_template(template_id).extract(_as_script(script))
