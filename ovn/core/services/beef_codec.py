# ovn/core/services/beef_codec.py
'''
class BeefCodec:
    Lectura y escritura de bundles BEEF (V1, V2 y Atomic).
    El bundle es auto-contenido: incluye los ancestros necesarios para resolver
    los scripts de los inputs de la transacción sujeto.

    Methods:
        parse(beef) -> BeefBundle: Parsea todas las transacciones y enlaza inputs con sus fuentes.
        parse_transaction(beef) -> Transaction: Atajo que devuelve la transacción sujeto.
        to_beef(transaction) -> bytes: Serializa V1 (sin BUMPs) con toda la ascendencia disponible.
'''

import logging
from typing import Dict, List, Optional

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.models.transaction import Transaction
from ovn.core.services.transaction_serializer import TransactionSerializer, MalformedTransactionError
from ovn.core.utils.binary_io import ByteReader, ByteWriter, BinaryReadError

logger = logging.getLogger(__name__)

class BeefBundle:

    def __init__(self, version: int, transactions: List[Transaction], subject_txid: str, bump_count: int = 0) -> None:
        self._version = version
        self._transactions = transactions
        self._by_txid: Dict[str, Transaction] = {tx.txid: tx for tx in transactions}
        self._subject_txid = subject_txid
        self._bump_count = bump_count

    @property
    def version(self) -> int: return self._version
    @property
    def transactions(self) -> List[Transaction]: return self._transactions[:]
    @property
    def bump_count(self) -> int: return self._bump_count

    @property
    def subject(self) -> Transaction:
        tx = self._by_txid.get(self._subject_txid)
        if tx is None:
            raise MalformedTransactionError(f"La transacción sujeto {self._subject_txid} no está en el bundle.")
        return tx

    def find(self, txid: str) -> Optional[Transaction]:
        return self._by_txid.get(txid)


class BeefCodec:

    @staticmethod
    def _skip_bump(reader: ByteReader) -> None:
        reader.read_varint()                # block height
        tree_height = reader.read_u8()
        for _ in range(tree_height):
            for _ in range(reader.read_varint()):
                reader.read_varint()        # offset
                flags = reader.read_u8()
                if not flags & 1:
                    reader.read(32)

    @staticmethod
    def parse(beef: bytes) -> BeefBundle:
        if not beef:
            raise MalformedTransactionError("Bundle BEEF vacío.")
        reader = ByteReader(beef)
        try:
            magic = reader.read_u32le()
            atomic_txid: Optional[str] = None
            if magic == ProtocolConstants.ATOMIC_BEEF:
                atomic_txid = reader.read_reverse(32).hex()
                magic = reader.read_u32le()

            if magic not in (ProtocolConstants.BEEF_V1, ProtocolConstants.BEEF_V2):
                raise MalformedTransactionError(f"Versión BEEF desconocida: {magic:#010x}")

            n_bumps = reader.read_varint()
            for _ in range(n_bumps):
                BeefCodec._skip_bump(reader)

            transactions: List[Transaction] = []
            known: Dict[str, Transaction] = {}
            last_txid: Optional[str] = None

            for _ in range(reader.read_varint()):
                if magic == ProtocolConstants.BEEF_V2:
                    fmt = reader.read_u8()
                    if fmt == ProtocolConstants.BEEF_TX_TXID_ONLY:
                        last_txid = reader.read_reverse(32).hex()
                        continue
                    if fmt == ProtocolConstants.BEEF_TX_RAW_AND_BUMP:
                        reader.read_varint()
                    elif fmt != ProtocolConstants.BEEF_TX_RAW:
                        raise MalformedTransactionError(f"Formato de transacción BEEF desconocido: {fmt}")
                    tx = TransactionSerializer.read(reader)
                else:
                    tx = TransactionSerializer.read(reader)
                    if reader.read_u8() != 0:
                        reader.read_varint()

                tx.link_sources(known)
                known[tx.txid] = tx
                transactions.append(tx)
                last_txid = tx.txid

        except BinaryReadError as e:
            raise MalformedTransactionError(f"BEEF truncado: {e}")

        if last_txid is None:
            raise MalformedTransactionError("El bundle BEEF no contiene transacciones.")

        subject_txid = atomic_txid or last_txid
        logger.debug(f"📦 BEEF v{magic & 0xff}: {len(transactions)} tx, sujeto {subject_txid[:8]}...")
        return BeefBundle(magic, transactions, subject_txid, n_bumps)

    @staticmethod
    def parse_transaction(beef: bytes) -> Transaction:
        return BeefCodec.parse(beef).subject

    @staticmethod
    def _collect_ancestry(tx: Transaction, ordered: List[Transaction], seen: Dict[str, bool]) -> None:
        if tx.txid in seen:
            return
        for inp in tx.inputs:
            if inp.source_transaction is not None:
                BeefCodec._collect_ancestry(inp.source_transaction, ordered, seen)
        seen[tx.txid] = True
        ordered.append(tx)

    @staticmethod
    def to_beef(transaction: Transaction) -> bytes:
        ordered: List[Transaction] = []
        BeefCodec._collect_ancestry(transaction, ordered, {})

        writer = ByteWriter()
        writer.write_u32le(ProtocolConstants.BEEF_V1)
        writer.write_varint(0)
        writer.write_varint(len(ordered))
        for tx in ordered:
            TransactionSerializer.write(writer, tx)
            writer.write_u8(0)
        return writer.to_bytes()

    @staticmethod
    def to_atomic_beef(transaction: Transaction) -> bytes:
        writer = ByteWriter()
        writer.write_u32le(ProtocolConstants.ATOMIC_BEEF)
        writer.write_reverse(bytes.fromhex(transaction.txid))
        writer.write(BeefCodec.to_beef(transaction))
        return writer.to_bytes()
