# ovn/core/scripting/pushdrop.py
'''
class PushDrop:
    Codec del template PushDrop: campos de datos seguidos de drops y un candado P2PK.

    Layouts soportados:
        'before': <pubkey> OP_CHECKSIG <campo_1> ... <campo_n> OP_2DROP ... [OP_DROP]
        'after' : <campo_1> ... <campo_n> OP_2DROP ... [OP_DROP] <pubkey> OP_CHECKSIG

    Methods:
        decode(script, position=None) -> DecodedScript: Decodifica; lanza MalformedScriptError si la forma no coincide.
        lock(fields, public_key, position='before') -> bytes: Construye el script con pushes mínimos.
'''

import logging
from typing import List, Optional, Sequence, Union

from ovn.core.models.decoded_script import DecodedScript
from ovn.core.scripting.opcodes import Opcodes
from ovn.core.scripting.script import Script, ScriptChunk, MalformedScriptError, minimal_push
from ovn.core.config.protocol_constants import ProtocolConstants

logger = logging.getLogger(__name__)

_DROPS = (Opcodes.OP_DROP, Opcodes.OP_2DROP)

class PushDrop:

    @staticmethod
    def decode(script: Union[bytes, Script], position: Optional[str] = None) -> DecodedScript:
        parsed = script if isinstance(script, Script) else Script.from_bytes(script)
        chunks = parsed.chunks

        if len(chunks) < 3:
            raise MalformedScriptError(f"PushDrop requiere al menos 3 chunks (hay {len(chunks)}).")

        if position is None:
            position = PushDrop._detect_position(chunks)

        if position == 'before':
            key_chunk, checksig = chunks[0], chunks[1]
            body = chunks[2:]
        elif position == 'after':
            key_chunk, checksig = chunks[-2], chunks[-1]
            body = chunks[:-2]
        else:
            raise ValueError(f"Posición de candado desconocida: {position}")

        if checksig.op != Opcodes.OP_CHECKSIG:
            raise MalformedScriptError("Se esperaba OP_CHECKSIG en el candado PushDrop.")

        embedder_key = key_chunk.data if key_chunk.is_push else None
        if embedder_key is None or len(embedder_key) != ProtocolConstants.COMPRESSED_PUBKEY_SIZE:
            raise MalformedScriptError("La clave del emisor debe ser un push de 33 bytes.")

        fields: List[bytes] = []
        index = 0
        while index < len(body) and body[index].op not in _DROPS:
            value = body[index].push_value()
            if value is None:
                raise MalformedScriptError(
                    f"Opcode inesperado {Opcodes.get_name(body[index].op)} en la posición de campo {index}."
                )
            fields.append(value)
            index += 1

        if not fields:
            raise MalformedScriptError("PushDrop sin campos de datos.")

        PushDrop._check_drops(body[index:], len(fields))
        return DecodedScript(fields, embedder_key)

    @staticmethod
    def _detect_position(chunks: List[ScriptChunk]) -> str:
        if chunks[1].op == Opcodes.OP_CHECKSIG:
            return 'before'
        if chunks[-1].op == Opcodes.OP_CHECKSIG:
            return 'after'
        raise MalformedScriptError("No se encontró el candado OP_CHECKSIG del PushDrop.")

    @staticmethod
    def _check_drops(tail: Sequence[ScriptChunk], n_fields: int) -> None:
        dropped = 0
        for chunk in tail:
            if chunk.op == Opcodes.OP_2DROP:
                dropped += 2
            elif chunk.op == Opcodes.OP_DROP:
                dropped += 1
            else:
                raise MalformedScriptError(
                    f"Instrucción {Opcodes.get_name(chunk.op)} tras los drops del PushDrop."
                )
        if dropped != n_fields:
            raise MalformedScriptError(f"Los drops ({dropped}) no consumen los {n_fields} campos.")

    @staticmethod
    def lock(fields: Sequence[bytes], public_key: bytes, position: str = 'before') -> bytes:
        if not fields:
            raise ValueError("PushDrop requiere al menos un campo.")
        if len(public_key) != ProtocolConstants.COMPRESSED_PUBKEY_SIZE:
            raise ValueError("La clave pública debe estar comprimida (33 bytes).")

        lock_part = minimal_push(public_key) + bytes([Opcodes.OP_CHECKSIG])

        body = b''.join(minimal_push(bytes(f)) for f in fields)
        remaining = len(fields)
        while remaining > 1:
            body += bytes([Opcodes.OP_2DROP])
            remaining -= 2
        if remaining == 1:
            body += bytes([Opcodes.OP_DROP])

        if position == 'before':
            return lock_part + body
        if position == 'after':
            return body + lock_part
        raise ValueError(f"Posición de candado desconocida: {position}")
