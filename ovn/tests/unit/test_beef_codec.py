# ovn/tests/unit/test_beef_codec.py
import sys
import os
import unittest

# --- AJUSTE DE RUTA ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_dir, '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.services.beef_codec import BeefCodec
from ovn.core.services.transaction_serializer import MalformedTransactionError, TransactionSerializer
from ovn.core.utils.binary_io import ByteWriter
from ovn.tests.mocks.overlay_fixtures import make_transaction, sha256_lock, spend_inputs

class TestBeefCodec(unittest.TestCase):

    def setUp(self):
        self.parent = make_transaction([sha256_lock(b'\x01' * 32), sha256_lock(b'\x02' * 32)], label="parent")
        self.child = make_transaction([sha256_lock(b'\x03' * 32)], inputs=spend_inputs(self.parent))

    def test_roundtrip_links_sources(self):
        bundle = BeefCodec.parse(BeefCodec.to_beef(self.child))

        self.assertEqual(bundle.version, ProtocolConstants.BEEF_V1)
        self.assertEqual(len(bundle.transactions), 2)
        self.assertEqual(bundle.subject.txid, self.child.txid)

        inputs = bundle.subject.inputs
        self.assertEqual(len(inputs), 2)
        self.assertIsNotNone(inputs[1].source_output)
        self.assertEqual(inputs[1].source_output.locking_script, sha256_lock(b'\x02' * 32))

    def test_varint_rejects_values_above_u64(self):
        writer = ByteWriter()
        writer.write_varint(0xffffffffffffffff)
        self.assertEqual(writer.to_bytes(), b'\xff' + b'\xff' * 8)
        with self.assertRaises(ValueError):
            writer.write_varint(2 ** 64)

    def test_txid_is_stable(self):
        raw = TransactionSerializer.to_bytes(self.child)
        self.assertEqual(TransactionSerializer.from_bytes(raw).txid, self.child.txid)

    def test_atomic_beef_selects_subject(self):
        # El sujeto declarado es el padre aunque el hijo sea la última transacción
        writer = ByteWriter()
        writer.write_u32le(ProtocolConstants.ATOMIC_BEEF)
        writer.write_reverse(bytes.fromhex(self.parent.txid))
        writer.write(BeefCodec.to_beef(self.child))

        subject = BeefCodec.parse_transaction(writer.to_bytes())
        self.assertEqual(subject.txid, self.parent.txid)
        self.assertEqual(BeefCodec.parse_transaction(BeefCodec.to_atomic_beef(self.child)).txid, self.child.txid)

    def test_v2_formats(self):
        writer = ByteWriter()
        writer.write_u32le(ProtocolConstants.BEEF_V2)
        writer.write_varint(0)
        writer.write_varint(3)
        # Solo txid de un ancestro lejano
        writer.write_u8(ProtocolConstants.BEEF_TX_TXID_ONLY)
        writer.write_reverse(b'\xaa' * 32)
        writer.write_u8(ProtocolConstants.BEEF_TX_RAW)
        TransactionSerializer.write(writer, self.parent)
        writer.write_u8(ProtocolConstants.BEEF_TX_RAW)
        TransactionSerializer.write(writer, self.child)

        bundle = BeefCodec.parse(writer.to_bytes())
        self.assertEqual(len(bundle.transactions), 2)
        self.assertEqual(bundle.subject.txid, self.child.txid)
        self.assertIsNotNone(bundle.find(self.parent.txid))

    def test_bump_is_skipped(self):
        writer = ByteWriter()
        writer.write_u32le(ProtocolConstants.BEEF_V1)
        writer.write_varint(1)
        # BUMP: altura, altura del árbol 1, un nivel con una hoja (offset, flags=0, hash)
        writer.write_varint(800000)
        writer.write_u8(1)
        writer.write_varint(1)
        writer.write_varint(0)
        writer.write_u8(0)
        writer.write(b'\xbb' * 32)
        writer.write_varint(1)
        TransactionSerializer.write(writer, self.parent)
        writer.write_u8(1)
        writer.write_varint(0)

        bundle = BeefCodec.parse(writer.to_bytes())
        self.assertEqual(bundle.bump_count, 1)
        self.assertEqual(bundle.subject.txid, self.parent.txid)

    def test_malformed_bundles(self):
        beef = BeefCodec.to_beef(self.child)
        for raw in [b'', b'\x00\x00\x00\x00', beef[:-3], beef[:4] + b'\x00']:
            with self.assertRaises(MalformedTransactionError):
                BeefCodec.parse(raw)

if __name__ == '__main__':
    unittest.main()
