# ovn/infra/crypto/software_signer.py
import hashlib
import logging
import binascii
from typing import Any, Union

from ecdsa import SigningKey, SECP256k1, util # type: ignore

# Importación del contrato
from ovn.core.interfaces.i_signer import ISigner, ANYONE
from ovn.core.services.key_deriver import KeyDeriver, KeyLike, NamespaceLike

logger = logging.getLogger(__name__)

class SoftwareSigner(ISigner):
    """Firmante en memoria a partir de una clave privada raíz (hex de 32 bytes)."""

    def __init__(self, private_key_hex: str) -> None:
        try:
            priv_key_bytes = binascii.unhexlify(private_key_hex)
            if len(priv_key_bytes) != 32:
                raise ValueError("longitud")
            self._deriver = KeyDeriver(int.from_bytes(priv_key_bytes, 'big'))
            logger.info("Firmante de software inicializado.")
        except (binascii.Error, ValueError):
            logger.exception("Fallo al cargar la clave privada en SoftwareSigner")
            raise ValueError("Formato de clave privada inválido.")

    @property
    def deriver(self) -> KeyDeriver:
        return self._deriver

    @staticmethod
    def _counterparty(counterparty: Union[str, bytes]) -> KeyLike:
        # 'anyone' es la clave pública G (escalar 1)
        if counterparty == ANYONE:
            return KeyDeriver.anyone().identity_key
        return counterparty

    def get_identity_key(self) -> str:
        return self._deriver.identity_key.hex()

    def sign(self, data: bytes, namespace: NamespaceLike, key_id: str, counterparty: Union[str, bytes] = ANYONE) -> bytes:
        child = self._deriver.derive_private_key(namespace, key_id, self._counterparty(counterparty))
        sk: Any = SigningKey.from_secret_exponent(child, curve=SECP256k1) # type: ignore

        # Firma DER estilo Bitcoin sobre SHA-256(data)
        signature: bytes = sk.sign_digest(
            hashlib.sha256(data).digest(),
            sigencode=util.sigencode_der # type: ignore
        )
        logger.debug(f"Firma generada bajo {KeyDeriver.compute_invoice_number(namespace, key_id)}")
        return signature

    def derive_locking_key(self, namespace: NamespaceLike, key_id: str, counterparty: Union[str, bytes] = ANYONE) -> bytes:
        return self._deriver.derive_public_key(namespace, key_id, self._counterparty(counterparty), for_self=True)

    def derive_symmetric_key(self, namespace: NamespaceLike, key_id: str, counterparty: Union[str, bytes] = ANYONE) -> bytes:
        return self._deriver.derive_symmetric_key(namespace, key_id, self._counterparty(counterparty))
