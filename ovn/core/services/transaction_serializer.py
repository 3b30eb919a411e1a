# ovn/core/services/transaction_serializer.py

import logging
from typing import List

from ovn.core.models.transaction import Transaction
from ovn.core.models.tx_input import TxInput
from ovn.core.models.tx_output import TxOutput
from ovn.core.utils.binary_io import ByteReader, ByteWriter, BinaryReadError

logger = logging.getLogger(__name__)

class MalformedTransactionError(ValueError):
    """Bytes de transacción (o bundle BEEF) que no se pueden parsear."""
    pass

class TransactionSerializer:
    """
    Formato crudo estándar:
        version u32 | varint n_in | inputs | varint n_out | outputs | locktime u32
    """

    @staticmethod
    def read(reader: ByteReader) -> Transaction:
        try:
            version = reader.read_u32le()

            inputs: List[TxInput] = []
            for _ in range(reader.read_varint()):
                source_txid = reader.read_reverse(32).hex()
                vout = reader.read_u32le()
                unlocking = reader.read_var_bytes()
                sequence = reader.read_u32le()
                inputs.append(TxInput(source_txid, vout, unlocking, sequence))

            outputs: List[TxOutput] = []
            for _ in range(reader.read_varint()):
                satoshis = reader.read_u64le()
                locking = reader.read_var_bytes()
                outputs.append(TxOutput(satoshis, locking))

            lock_time = reader.read_u32le()
        except BinaryReadError as e:
            raise MalformedTransactionError(f"Transacción truncada: {e}")

        return Transaction(inputs=inputs, outputs=outputs, version=version, lock_time=lock_time)

    @staticmethod
    def from_bytes(raw_tx: bytes) -> Transaction:
        reader = ByteReader(raw_tx)
        tx = TransactionSerializer.read(reader)
        if not reader.eof():
            raise MalformedTransactionError(f"{reader.remaining} bytes sobrantes tras la transacción.")
        return tx

    @staticmethod
    def from_hex(raw_hex: str) -> Transaction:
        try:
            raw = bytes.fromhex(raw_hex)
        except ValueError as e:
            raise MalformedTransactionError(f"Hex inválido: {e}")
        return TransactionSerializer.from_bytes(raw)

    @staticmethod
    def write(writer: ByteWriter, transaction: Transaction) -> None:
        writer.write_u32le(transaction.version)

        inputs = transaction.inputs
        writer.write_varint(len(inputs))
        for inp in inputs:
            writer.write_reverse(bytes.fromhex(inp.source_txid))
            writer.write_u32le(inp.source_output_index)
            writer.write_var_bytes(inp.unlocking_script)
            writer.write_u32le(inp.sequence)

        outputs = transaction.outputs
        writer.write_varint(len(outputs))
        for out in outputs:
            writer.write_u64le(out.satoshis)
            writer.write_var_bytes(out.locking_script)

        writer.write_u32le(transaction.lock_time)

    @staticmethod
    def to_bytes(transaction: Transaction) -> bytes:
        writer = ByteWriter()
        TransactionSerializer.write(writer, transaction)
        return writer.to_bytes()

    @staticmethod
    def to_hex(transaction: Transaction) -> str:
        return TransactionSerializer.to_bytes(transaction).hex()
