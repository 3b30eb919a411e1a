# ovn/core/services/key_deriver.py
'''
Derivación determinista de claves hijas (esquema tipo BRC-42) sobre secp256k1.

Dada una clave raíz k, una contraparte P y un invoice "nivel-protocolo-keyID":
    h = HMAC_SHA256(clave=comprimida(k·P), mensaje=invoice)
    pública de la contraparte  : P + h·G
    privada propia             : (k + h) mod n
La clave 'anyone' (k = 1) permite a cualquiera derivar la clave pública que un
emisor usó bajo un espacio de nombres, sin secretos compartidos.
'''

import re
import hmac
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Sequence, Tuple, Union

from ecdsa import SECP256k1, VerifyingKey # type: ignore
from ecdsa.errors import MalformedPointError # type: ignore

from ovn.core.config.protocol_constants import ProtocolConstants

logger = logging.getLogger(__name__)

CURVE_ORDER: int = SECP256k1.order
GENERATOR = SECP256k1.generator

_PROTOCOL_NAME_RE = re.compile(r'^[a-z0-9 ]+$')

class InvoiceNumberError(ValueError):
    """Espacio de nombres o keyID inválidos."""
    pass


@dataclass(frozen=True)
class ProtocolNamespace:
    security_level: int
    protocol: str

    @staticmethod
    def coerce(value: Union['ProtocolNamespace', Sequence[Any]]) -> 'ProtocolNamespace':
        if isinstance(value, ProtocolNamespace):
            return value
        if len(value) != 2:
            raise InvoiceNumberError(f"protocolID debe ser (nivel, nombre): {value!r}")
        return ProtocolNamespace(int(value[0]), str(value[1]))

    def as_tuple(self) -> Tuple[int, str]:
        return (self.security_level, self.protocol)


NamespaceLike = Union[ProtocolNamespace, Sequence[Any]]
KeyLike = Union[str, bytes]


class KeyDeriver:

    def __init__(self, root_private_key: int) -> None:
        if not 1 <= root_private_key < CURVE_ORDER:
            raise ValueError("Clave privada raíz fuera del rango de la curva.")
        self._root = root_private_key
        self._root_point = GENERATOR * root_private_key

    @classmethod
    def anyone(cls) -> 'KeyDeriver':
        return cls(ProtocolConstants.ANYONE_PRIVATE_KEY)

    @property
    def identity_key(self) -> bytes:
        return KeyDeriver.encode_point(self._root_point)

    # --- Utilidades de curva ---

    @staticmethod
    def encode_point(point: Any) -> bytes:
        x, y = point.x(), point.y()
        prefix = b'\x03' if y & 1 else b'\x02'
        return prefix + int(x).to_bytes(32, 'big')

    @staticmethod
    def parse_public_key(key: KeyLike) -> Any:
        """Punto de la curva desde una clave comprimida (hex o bytes). Lanza ValueError si no es válida."""
        try:
            raw = bytes.fromhex(key) if isinstance(key, str) else bytes(key)
        except ValueError as e:
            raise ValueError(f"Clave pública no hexadecimal: {e}")
        if len(raw) != ProtocolConstants.COMPRESSED_PUBKEY_SIZE:
            raise ValueError(f"Clave pública comprimida de {len(raw)} bytes (se esperaban 33).")
        try:
            return VerifyingKey.from_string(raw, curve=SECP256k1).pubkey.point # type: ignore
        except MalformedPointError as e:
            raise ValueError(f"Punto de curva inválido: {e}")

    @staticmethod
    def compute_invoice_number(namespace: NamespaceLike, key_id: str) -> str:
        ns = ProtocolNamespace.coerce(namespace)
        if ns.security_level not in (0, 1, 2):
            raise InvoiceNumberError("El nivel de seguridad debe ser 0, 1 o 2.")

        name = ns.protocol.lower().strip()
        if len(key_id) > 800:
            raise InvoiceNumberError("keyID debe tener como máximo 800 caracteres.")
        if len(key_id) < 1:
            raise InvoiceNumberError("keyID debe tener al menos 1 caracter.")
        if len(name) > 400 and not name.startswith("specific linkage revelation "):
            raise InvoiceNumberError("El nombre de protocolo debe tener como máximo 400 caracteres.")
        if len(name) < 5:
            raise InvoiceNumberError("El nombre de protocolo debe tener al menos 5 caracteres.")
        if "  " in name:
            raise InvoiceNumberError("El nombre de protocolo no puede contener espacios dobles.")
        if not _PROTOCOL_NAME_RE.match(name):
            raise InvoiceNumberError("El nombre de protocolo solo admite letras, números y espacios.")
        if name.endswith(" protocol"):
            raise InvoiceNumberError("El nombre de protocolo no debe terminar en ' protocol'.")

        return f"{ns.security_level}-{name}-{key_id}"

    def _offset(self, counterparty_point: Any, invoice: str) -> int:
        shared = counterparty_point * self._root
        digest = hmac.new(KeyDeriver.encode_point(shared), invoice.encode('utf-8'), hashlib.sha256).digest()
        return int.from_bytes(digest, 'big') % CURVE_ORDER

    # --- Derivaciones ---

    def derive_public_key(self, namespace: NamespaceLike, key_id: str, counterparty: KeyLike, for_self: bool = False) -> bytes:
        invoice = KeyDeriver.compute_invoice_number(namespace, key_id)
        counterparty_point = KeyDeriver.parse_public_key(counterparty)
        offset = self._offset(counterparty_point, invoice)
        base = self._root_point if for_self else counterparty_point
        return KeyDeriver.encode_point(base + GENERATOR * offset)

    def derive_private_key(self, namespace: NamespaceLike, key_id: str, counterparty: KeyLike) -> int:
        invoice = KeyDeriver.compute_invoice_number(namespace, key_id)
        counterparty_point = KeyDeriver.parse_public_key(counterparty)
        return (self._root + self._offset(counterparty_point, invoice)) % CURVE_ORDER

    def derive_symmetric_key(self, namespace: NamespaceLike, key_id: str, counterparty: KeyLike) -> bytes:
        """Coordenada x (32 bytes) del secreto ECDH entre las dos claves hijas."""
        child_public = KeyDeriver.parse_public_key(self.derive_public_key(namespace, key_id, counterparty))
        child_private = self.derive_private_key(namespace, key_id, counterparty)
        shared = child_public * child_private
        return int(shared.x()).to_bytes(32, 'big')
