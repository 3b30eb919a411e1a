# ovn/core/interfaces/i_signer.py

import logging
from abc import ABC, abstractmethod
from typing import Union

from ovn.core.services.key_deriver import NamespaceLike

logger = logging.getLogger(__name__)

ANYONE = "anyone"

class ISigner(ABC):
    """
    [Abstracción de Seguridad]
    Contrato que define la capacidad de firmar bajo un espacio de nombres (protocolID + keyID).

    Permite desacoplar la emisión de tokens del almacenamiento sensible de la clave raíz.
    """

    @abstractmethod
    def get_identity_key(self) -> str:
        """Clave pública de identidad (hex comprimido)."""
        pass

    @abstractmethod
    def sign(self, data: bytes, namespace: NamespaceLike, key_id: str, counterparty: Union[str, bytes] = ANYONE) -> bytes:
        """
        Firma SHA-256(data) con la clave hija derivada.

        Returns:
            bytes: Firma ECDSA en formato DER.
        """
        pass

    @abstractmethod
    def derive_locking_key(self, namespace: NamespaceLike, key_id: str, counterparty: Union[str, bytes] = ANYONE) -> bytes:
        """Clave pública hija propia (comprimida) para bloquear un token."""
        pass
