# ovn/core/utils/binary_io.py

import struct
from typing import List

class BinaryReadError(ValueError):
    """Lectura fuera de rango o entero mal codificado."""
    pass

class ByteReader:
    """
    Cursor de lectura sobre un buffer binario.
    Los enteros son little-endian; los varint siguen el formato CompactSize.
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def eof(self) -> bool:
        return self._pos >= len(self._data)

    def read(self, n: int) -> bytes:
        if n < 0 or self._pos + n > len(self._data):
            raise BinaryReadError(f"Lectura de {n} bytes excede el buffer (pos={self._pos}, len={len(self._data)}).")
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def read_reverse(self, n: int) -> bytes:
        return self.read(n)[::-1]

    def read_u8(self) -> int:
        return self.read(1)[0]

    def read_u32le(self) -> int:
        return struct.unpack('<I', self.read(4))[0]

    def read_u64le(self) -> int:
        return struct.unpack('<Q', self.read(8))[0]

    def read_varint(self) -> int:
        first = self.read_u8()
        if first < 0xfd:
            return first
        if first == 0xfd:
            return struct.unpack('<H', self.read(2))[0]
        if first == 0xfe:
            return struct.unpack('<I', self.read(4))[0]
        return struct.unpack('<Q', self.read(8))[0]

    def read_var_bytes(self) -> bytes:
        return self.read(self.read_varint())


class ByteWriter:

    def __init__(self) -> None:
        self._parts: List[bytes] = []

    def write(self, data: bytes) -> 'ByteWriter':
        self._parts.append(bytes(data))
        return self

    def write_reverse(self, data: bytes) -> 'ByteWriter':
        return self.write(bytes(data)[::-1])

    def write_u8(self, value: int) -> 'ByteWriter':
        return self.write(struct.pack('<B', value))

    def write_u32le(self, value: int) -> 'ByteWriter':
        return self.write(struct.pack('<I', value))

    def write_u64le(self, value: int) -> 'ByteWriter':
        return self.write(struct.pack('<Q', value))

    def write_varint(self, value: int) -> 'ByteWriter':
        return self.write(encode_varint(value))

    def write_var_bytes(self, data: bytes) -> 'ByteWriter':
        self.write_varint(len(data))
        return self.write(data)

    def to_bytes(self) -> bytes:
        return b''.join(self._parts)


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError("varint no admite valores negativos.")
    if value < 0xfd:
        return struct.pack('<B', value)
    if value <= 0xffff:
        return b'\xfd' + struct.pack('<H', value)
    if value <= 0xffffffff:
        return b'\xfe' + struct.pack('<I', value)
    if value > 0xffffffffffffffff:
        raise ValueError("varint no admite valores mayores que u64.")
    return b'\xff' + struct.pack('<Q', value)
