# ovn/core/services/signature_linkage_verifier.py

import hashlib
import logging
from typing import Optional

from ecdsa import VerifyingKey, SECP256k1, util, BadSignatureError # type: ignore
from ecdsa.der import UnexpectedDER # type: ignore

from ovn.core.services.key_deriver import KeyDeriver, KeyLike, NamespaceLike, InvoiceNumberError

logger = logging.getLogger(__name__)

class SignatureLinkageVerifier:
    """
    Servicio de Dominio para la vinculación criptográfica con una identidad.
    Sin estado: se construye explícitamente y se inyecta en el motor de admisión.

    Comprueba dos cosas:
        (a) que una clave de bloqueo fue derivada de la identidad bajo un espacio de nombres;
        (b) que unos datos fueron firmados por la identidad bajo ese mismo espacio de nombres.
    """

    def __init__(self, deriver: Optional[KeyDeriver] = None) -> None:
        self._deriver = deriver if deriver is not None else KeyDeriver.anyone()

    def derive_key(self, namespace: NamespaceLike, key_id: str, identity_key: KeyLike) -> bytes:
        """Clave pública hija (comprimida) que la identidad usa bajo (namespace, key_id)."""
        return self._deriver.derive_public_key(namespace, key_id, identity_key)

    def is_key_linked(self, locking_key: KeyLike, identity_key: KeyLike, namespace: NamespaceLike, key_id: str) -> bool:
        try:
            expected = self.derive_key(namespace, key_id, identity_key)
            actual = bytes.fromhex(locking_key) if isinstance(locking_key, str) else bytes(locking_key)
        except InvoiceNumberError:
            raise
        except ValueError as e:
            logger.debug(f"Vinculación imposible: {e}")
            return False
        return expected == actual

    def verify(self, data: bytes, signature: bytes, identity_key: KeyLike, namespace: NamespaceLike, key_id: str) -> bool:
        """
        Verifica una firma DER sobre SHA-256(data) con la clave hija de la identidad.
        Claves o firmas mal formadas devuelven False.
        """
        try:
            child_key = self.derive_key(namespace, key_id, identity_key)
            vk = VerifyingKey.from_string(child_key, curve=SECP256k1) # type: ignore
        except InvoiceNumberError:
            raise
        except ValueError as e:
            logger.debug(f"Identidad inválida para verificación: {e}")
            return False

        digest = hashlib.sha256(data).digest()
        try:
            return bool(vk.verify_digest(signature, digest, sigdecode=util.sigdecode_der)) # type: ignore
        except (BadSignatureError, UnexpectedDER):
            return False
