# ovn/core/scripting/opcodes.py

import logging
from enum import IntEnum, unique

logger = logging.getLogger(__name__)

@unique
class Opcodes(IntEnum):

    # --- CONSTANTES / PUSH ---
    OP_0 = 0x00         # Empuja un vector vacío (OP_FALSE)
    OP_PUSHDATA1 = 0x4c # Longitud en 1 byte
    OP_PUSHDATA2 = 0x4d # Longitud en 2 bytes (LE)
    OP_PUSHDATA4 = 0x4e # Longitud en 4 bytes (LE)
    OP_1NEGATE = 0x4f
    OP_1 = 0x51         # OP_TRUE
    OP_2 = 0x52
    OP_3 = 0x53
    OP_4 = 0x54
    OP_5 = 0x55
    OP_6 = 0x56
    OP_7 = 0x57
    OP_8 = 0x58
    OP_9 = 0x59
    OP_10 = 0x5a
    OP_11 = 0x5b
    OP_12 = 0x5c
    OP_13 = 0x5d
    OP_14 = 0x5e
    OP_15 = 0x5f
    OP_16 = 0x60

    # --- CONTROL DE FLUJO ---
    OP_NOP = 0x61
    OP_IF = 0x63
    OP_NOTIF = 0x64
    OP_VERIF = 0x65
    OP_VERNOTIF = 0x66
    OP_ELSE = 0x67
    OP_ENDIF = 0x68
    OP_VERIFY = 0x69
    OP_RETURN = 0x6a

    # --- MANIPULACIÓN DE PILA ---
    OP_TOALTSTACK = 0x6b
    OP_FROMALTSTACK = 0x6c
    OP_2DROP = 0x6d
    OP_2DUP = 0x6e
    OP_DROP = 0x75      # Elimina el elemento superior
    OP_DUP = 0x76       # Duplica el elemento superior
    OP_SWAP = 0x7c

    # --- SPLICE ---
    OP_CAT = 0x7e
    OP_SPLIT = 0x7f
    OP_SIZE = 0x82

    # --- OPERADORES LÓGICOS ---
    OP_EQUAL = 0x87     # Compara los dos elementos superiores
    OP_EQUALVERIFY = 0x88

    # --- CRIPTOGRAFÍA ---
    OP_RIPEMD160 = 0xa6
    OP_SHA1 = 0xa7
    OP_SHA256 = 0xa8
    OP_HASH160 = 0xa9   # RIPEMD160(SHA256(item))
    OP_HASH256 = 0xaa
    OP_CHECKSIG = 0xac  # Verifica firma ECDSA contra clave pública
    OP_CHECKSIGVERIFY = 0xad
    OP_CHECKMULTISIG = 0xae
    OP_CHECKMULTISIGVERIFY = 0xaf

    @classmethod
    def get_name(cls, code: int) -> str:
        try:
            return cls(code).name
        except ValueError:
            if 0x01 <= code <= 0x4b:
                return f"OP_PUSHBYTES_{code}"
            logger.debug(f"Instrucción de script desconocida: {hex(code)}")
            return f"OP_UNKNOWN({hex(code)})"

    @classmethod
    def small_int(cls, value: int) -> int:
        """Opcode que empuja el entero 1..16."""
        if not 1 <= value <= 16:
            raise ValueError(f"Entero pequeño fuera de rango: {value}")
        return cls.OP_1 + value - 1


CONDITIONAL_OPENERS = frozenset({Opcodes.OP_IF, Opcodes.OP_NOTIF, Opcodes.OP_VERIF, Opcodes.OP_VERNOTIF})
