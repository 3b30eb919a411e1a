# ovn/tests/mocks/overlay_fixtures.py
'''
Fábricas de datos reales para los tests: claves ecdsa, tokens PushDrop firmados,
certificados de identidad cifrados, transacciones y bundles BEEF.

    make_signer(label) -> SoftwareSigner
    signed_pushdrop(signer, namespace, fields) -> bytes
    make_transaction(scripts, inputs=None, label="") -> Transaction
    make_certificate(subject, certifier, fields) -> Dict
    token_script(signer, token_id, amount, custom_fields=None) -> bytes
'''

import base64
import hashlib
import json
from typing import Any, Dict, List, Optional, Sequence

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_signer import ANYONE
from ovn.core.models.certificate import Certificate
from ovn.core.models.transaction import Transaction
from ovn.core.models.tx_input import TxInput
from ovn.core.models.tx_output import TxOutput
from ovn.core.scripting.opcodes import Opcodes as Op
from ovn.core.scripting.pushdrop import PushDrop
from ovn.core.scripting.script import minimal_push
from ovn.core.services.beef_codec import BeefCodec
from ovn.core.services.certificate_service import CertificateService
from ovn.core.validators.ledger_balance_validator import TokenFields
from ovn.infra.crypto.software_signer import SoftwareSigner

def _digest(label: str) -> bytes:
    return hashlib.sha256(label.encode('utf-8')).digest()

def make_signer(label: str) -> SoftwareSigner:
    return SoftwareSigner(_digest(f"signer:{label}").hex())

# --- PushDrop firmados ---

def signed_pushdrop(
    signer: SoftwareSigner,
    namespace: Any,
    fields: Sequence[bytes],
    key_id: str = ProtocolConstants.DEFAULT_KEY_ID,
    tamper_field: Optional[int] = None
) -> bytes:
    """Token [campos..., firma] bloqueado con la clave hija del firmante."""
    payload = b''.join(fields)
    signature = signer.sign(payload, namespace, key_id)
    data = list(fields)
    if tamper_field is not None:
        # Se altera un byte DESPUÉS de firmar
        altered = bytearray(data[tamper_field])
        altered[0] ^= 0x01
        data[tamper_field] = bytes(altered)
    locking_key = signer.derive_locking_key(namespace, key_id)
    return PushDrop.lock(data + [signature], locking_key)

def token_script(signer: SoftwareSigner, token_id: str, amount: int, custom_fields: Optional[Dict[str, Any]] = None) -> bytes:
    fields = [
        token_id.encode('utf-8'),
        TokenFields.encode_amount(amount),
        json.dumps(custom_fields or {}).encode('utf-8'),
    ]
    return PushDrop.lock(fields, bytes.fromhex(signer.get_identity_key()))

# --- Transacciones ---

def make_transaction(
    scripts: Sequence[bytes],
    inputs: Optional[Sequence[TxInput]] = None,
    label: str = "",
    satoshis: int = 1
) -> Transaction:
    if inputs is None:
        inputs = [TxInput(_digest(f"funding:{label}").hex(), 0)]
    return Transaction(inputs=inputs, outputs=[TxOutput(satoshis, s) for s in scripts])

def spend_inputs(*sources: Transaction) -> List[TxInput]:
    """Inputs que consumen todos los outputs de las transacciones dadas (con su fuente enlazada)."""
    return [
        TxInput(tx.txid, index, source_transaction=tx)
        for tx in sources
        for index in range(len(tx.outputs))
    ]

def beef_of(transaction: Transaction) -> bytes:
    return BeefCodec.to_beef(transaction)

# --- Scripts de plantilla ---

def p2pkh(pubkey_hash: bytes) -> bytes:
    return (
        bytes([Op.OP_DUP, Op.OP_HASH160]) + minimal_push(pubkey_hash) + bytes([Op.OP_EQUALVERIFY, Op.OP_CHECKSIG])
    )

def sha256_lock(thread_hash: bytes) -> bytes:
    return bytes([Op.OP_SHA256]) + minimal_push(thread_hash) + bytes([Op.OP_EQUAL])

def op_return_hash(file_hash: bytes, size_prefix: int = 0x20) -> bytes:
    # Tras OP_RETURN todo es dato crudo: <tamaño><hash>
    return bytes([Op.OP_0, Op.OP_RETURN, size_prefix]) + file_hash

def pushdrop_pair(first: bytes, second: bytes, pubkey: bytes) -> bytes:
    return minimal_push(first) + minimal_push(second) + bytes([Op.OP_2DROP]) + minimal_push(pubkey) + bytes([Op.OP_CHECKSIG])

def ordinal_envelope(inscription: Dict[str, Any], content_type: bytes = b'application/bsv-20') -> bytes:
    return (
        bytes([Op.OP_0, Op.OP_IF])
        + minimal_push(b'ord') + bytes([Op.OP_1]) + minimal_push(content_type)
        + bytes([Op.OP_0]) + minimal_push(json.dumps(inscription).encode('utf-8'))
        + bytes([Op.OP_ENDIF])
    )

def multisig_tail(script_hash: bytes) -> bytes:
    return (
        bytes([Op.OP_2DUP, Op.OP_CAT, Op.OP_HASH160]) + minimal_push(script_hash)
        + bytes([Op.OP_EQUALVERIFY, Op.OP_TOALTSTACK, Op.OP_TOALTSTACK, Op.OP_1,
                 Op.OP_FROMALTSTACK, Op.OP_FROMALTSTACK, Op.OP_2, Op.OP_CHECKMULTISIG])
    )

def return_data(data: bytes) -> bytes:
    return bytes([Op.OP_RETURN]) + data

# --- Certificados ---

def make_certificate(
    subject: SoftwareSigner,
    certifier: SoftwareSigner,
    fields: Dict[str, str],
    cert_type: Optional[str] = None,
    serial_number: Optional[str] = None
) -> Dict[str, Any]:
    """Certificado firmado por `certifier` con todos sus campos revelados a 'anyone'."""
    cert_type = cert_type or base64.b64encode(_digest("type:identity")).decode('ascii')
    serial_number = serial_number or base64.b64encode(_digest(f"serial:{subject.get_identity_key()}")).decode('ascii')

    encrypted_fields: Dict[str, str] = {}
    keyring: Dict[str, str] = {}
    for name, value in fields.items():
        revelation_key = _digest(f"revelation:{serial_number}:{name}")
        encrypted_fields[name] = base64.b64encode(
            CertificateService.encrypt(revelation_key, value.encode('utf-8'))
        ).decode('ascii')
        symmetric = subject.derive_symmetric_key(
            ProtocolConstants.NS_CERT_FIELD_ENCRYPTION,
            CertificateService.field_key_id(serial_number, name),
            ANYONE
        )
        keyring[name] = base64.b64encode(CertificateService.encrypt(symmetric, revelation_key)).decode('ascii')

    unsigned = Certificate(
        cert_type=cert_type,
        serial_number=serial_number,
        subject=subject.get_identity_key(),
        certifier=certifier.get_identity_key(),
        revocation_outpoint=f"{'00' * 32}.0",
        fields=encrypted_fields,
        signature="",
        keyring=keyring
    )
    signature = certifier.sign(
        CertificateService.to_binary(unsigned),
        ProtocolConstants.NS_CERT_SIGNATURE,
        f"{cert_type} {serial_number}"
    )
    data = unsigned.to_dict()
    data["signature"] = signature.hex()
    return data

def identity_token(subject: SoftwareSigner, certificate: Dict[str, Any]) -> bytes:
    return signed_pushdrop(subject, ProtocolConstants.NS_IDENTITY, [json.dumps(certificate).encode('utf-8')])
