# ovn/tests/unit/test_certificate_service.py
'''
Test Suite para CertificateService:
    Firma del certificador, descifrado de campos revelados y cifrado AES-GCM.
'''

import sys
import os
import base64
import unittest

# --- AJUSTE DE RUTA ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_dir, '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ovn.core.models.certificate import Certificate
from ovn.core.services.certificate_service import CertificateError, CertificateService
from ovn.tests.mocks.overlay_fixtures import make_certificate, make_signer

class TestCertificateService(unittest.TestCase):

    def setUp(self):
        self.subject = make_signer("cert-subject")
        self.certifier = make_signer("cert-certifier")
        self.cert_dict = make_certificate(self.subject, self.certifier, {"name": "Alice", "email": "alice@example.com"})
        self.cert = Certificate.from_dict(self.cert_dict)

    def test_certifier_signature_verifies(self):
        self.assertTrue(CertificateService.verify(self.cert))

    def test_tampered_field_breaks_signature(self):
        data = dict(self.cert_dict)
        fields = dict(data["fields"])
        fields["name"] = base64.b64encode(b"otra cosa cifrada....").decode('ascii')
        data["fields"] = fields
        self.assertFalse(CertificateService.verify(Certificate.from_dict(data)))

    def test_foreign_certifier_fails(self):
        data = dict(self.cert_dict)
        data["certifier"] = make_signer("impostor").get_identity_key()
        self.assertFalse(CertificateService.verify(Certificate.from_dict(data)))

    def test_decrypt_revealed_fields(self):
        decrypted = CertificateService.decrypt_fields(self.cert)
        self.assertEqual(decrypted, {"name": "Alice", "email": "alice@example.com"})

    def test_keyring_for_missing_field(self):
        data = dict(self.cert_dict)
        keyring = dict(data["keyring"])
        keyring["phone"] = keyring["name"]
        data["keyring"] = keyring
        with self.assertRaises(CertificateError):
            CertificateService.decrypt_fields(Certificate.from_dict(data))

    def test_keyring_of_other_subject_does_not_decrypt(self):
        # Mismo certificado, pero el sujeto declarado es otro: la clave simétrica no coincide
        data = dict(self.cert_dict)
        data["subject"] = make_signer("otro-sujeto").get_identity_key()
        with self.assertRaises(CertificateError):
            CertificateService.decrypt_fields(Certificate.from_dict(data))

    def test_empty_keyring_reveals_nothing(self):
        data = dict(self.cert_dict)
        data["keyring"] = {}
        with self.assertRaises(CertificateError):
            CertificateService.decrypt_fields(Certificate.from_dict(data))

    def test_aes_gcm_roundtrip_and_tamper(self):
        key = b'\x07' * 32
        sealed = CertificateService.encrypt(key, b"secreto")
        self.assertEqual(CertificateService.decrypt(key, sealed), b"secreto")

        tampered = sealed[:-1] + bytes([sealed[-1] ^ 0x01])
        with self.assertRaises(CertificateError):
            CertificateService.decrypt(key, tampered)
        with self.assertRaises(CertificateError):
            CertificateService.decrypt(key, b'\x00' * 8)

    def test_incomplete_certificate(self):
        data = dict(self.cert_dict)
        del data["serialNumber"]
        with self.assertRaises(ValueError):
            Certificate.from_dict(data)

if __name__ == '__main__':
    unittest.main()
