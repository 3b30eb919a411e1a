# ovn/core/services/transaction_hasher.py

import hashlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ovn.core.models.transaction import Transaction

logger = logging.getLogger(__name__)

class TransactionHasher:

    @staticmethod
    def sha256d(data: bytes) -> bytes:
        """Doble SHA-256."""
        return hashlib.sha256(hashlib.sha256(data).digest()).digest()

    @staticmethod
    def txid_from_raw(raw_tx: bytes) -> str:
        """txid = hash doble invertido (orden de visualización), en hex."""
        return TransactionHasher.sha256d(raw_tx)[::-1].hex()

    @staticmethod
    def txid(transaction: 'Transaction') -> str:
        # Import local: el serializador depende de los modelos y los modelos del hasher
        from ovn.core.services.transaction_serializer import TransactionSerializer
        return TransactionHasher.txid_from_raw(TransactionSerializer.to_bytes(transaction))
