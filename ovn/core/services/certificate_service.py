# ovn/core/services/certificate_service.py
'''
class CertificateService:
    Verificación de certificados de identidad y descifrado de campos revelados.

    Methods:
        to_binary(cert, include_signature=False) -> bytes: Preimagen firmada por el certificador.
        verify(cert, verifier) -> bool: Firma del certificador bajo [2,'certificate signature'].
        decrypt_fields(cert, deriver=None) -> Dict[str, str]: Descifra todos los campos del keyring.
        encrypt(key, plaintext) / decrypt(key, ciphertext): AES-GCM con IV de 32 bytes.
'''

import os
import base64
import binascii
import logging
from typing import Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.models.certificate import Certificate
from ovn.core.services.key_deriver import KeyDeriver, InvoiceNumberError
from ovn.core.services.signature_linkage_verifier import SignatureLinkageVerifier
from ovn.core.utils.binary_io import ByteWriter

logger = logging.getLogger(__name__)

IV_SIZE = 32
TAG_SIZE = 16

class CertificateError(ValueError):
    """Certificado inválido o campos imposibles de descifrar."""
    pass

class CertificateService:

    @staticmethod
    def _b64(value: str) -> bytes:
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CertificateError(f"Base64 inválido: {e}")

    @staticmethod
    def to_binary(cert: Certificate, include_signature: bool = False) -> bytes:
        writer = ByteWriter()
        writer.write(CertificateService._b64(cert.type))
        writer.write(CertificateService._b64(cert.serial_number))
        try:
            writer.write(bytes.fromhex(cert.subject))
            writer.write(bytes.fromhex(cert.certifier))
            txid, index = cert.revocation_reference()
            writer.write(bytes.fromhex(txid))
            writer.write_varint(index)
        except ValueError as e:
            raise CertificateError(f"Certificado mal formado: {e}")

        fields = cert.fields
        writer.write_varint(len(fields))
        for name in sorted(fields):
            writer.write_var_bytes(name.encode('utf-8'))
            writer.write_var_bytes(fields[name].encode('utf-8'))

        if include_signature and cert.signature:
            writer.write(bytes.fromhex(cert.signature))
        return writer.to_bytes()

    @staticmethod
    def verify(cert: Certificate, verifier: Optional[SignatureLinkageVerifier] = None) -> bool:
        verifier = verifier if verifier is not None else SignatureLinkageVerifier()
        try:
            preimage = CertificateService.to_binary(cert)
            signature = bytes.fromhex(cert.signature)
        except ValueError as e:
            logger.debug(f"Certificado no verificable: {e}")
            return False

        try:
            return verifier.verify(
                preimage, signature, cert.certifier,
                ProtocolConstants.NS_CERT_SIGNATURE, f"{cert.type} {cert.serial_number}"
            )
        except InvoiceNumberError as e:
            # type + serialNumber vienen del propio certificado
            logger.debug(f"keyID de certificado inválido: {e}")
            return False

    @staticmethod
    def field_key_id(serial_number: str, field_name: str) -> str:
        return f"{serial_number} {field_name}"

    @staticmethod
    def decrypt_fields(cert: Certificate, deriver: Optional[KeyDeriver] = None) -> Dict[str, str]:
        deriver = deriver if deriver is not None else KeyDeriver.anyone()
        fields = cert.fields
        decrypted: Dict[str, str] = {}

        for name, encrypted_key in cert.keyring.items():
            if name not in fields:
                raise CertificateError(f"El keyring revela un campo inexistente: {name}")
            try:
                symmetric = deriver.derive_symmetric_key(
                    ProtocolConstants.NS_CERT_FIELD_ENCRYPTION,
                    CertificateService.field_key_id(cert.serial_number, name),
                    cert.subject
                )
            except ValueError as e:
                raise CertificateError(f"No se pudo derivar la clave del campo '{name}': {e}")
            revelation_key = CertificateService.decrypt(symmetric, CertificateService._b64(encrypted_key))
            plaintext = CertificateService.decrypt(revelation_key, CertificateService._b64(fields[name]))
            try:
                decrypted[name] = plaintext.decode('utf-8')
            except UnicodeDecodeError:
                raise CertificateError(f"El campo '{name}' no es UTF-8.")

        if not decrypted:
            raise CertificateError("El certificado no revela ningún campo.")
        return decrypted

    # --- AES-GCM (iv | ciphertext | tag) ---

    @staticmethod
    def encrypt(key: bytes, plaintext: bytes, iv: Optional[bytes] = None) -> bytes:
        iv = iv if iv is not None else os.urandom(IV_SIZE)
        sealed = AESGCM(key).encrypt(iv, plaintext, None)
        return iv + sealed

    @staticmethod
    def decrypt(key: bytes, message: bytes) -> bytes:
        if len(message) < IV_SIZE + TAG_SIZE:
            raise CertificateError("Mensaje cifrado demasiado corto.")
        iv = message[:IV_SIZE]
        try:
            return AESGCM(key).decrypt(iv, message[IV_SIZE:], None)
        except (InvalidTag, ValueError) as e:
            raise CertificateError(f"Descifrado fallido: {e.__class__.__name__}")
