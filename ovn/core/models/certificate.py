# ovn/core/models/certificate.py

import logging
from typing import Dict, Any, Optional, Tuple

logger = logging.getLogger(__name__)

class Certificate:
    """
    Certificado de identidad revelado públicamente.
    Los valores de `fields` están cifrados (base64); `keyring` contiene, por campo,
    la clave de revelación cifrada para el verificador 'anyone'.
    """

    _REQUIRED = ("type", "serialNumber", "subject", "certifier", "revocationOutpoint", "fields", "signature")

    def __init__(
        self,
        cert_type: str,
        serial_number: str,
        subject: str,
        certifier: str,
        revocation_outpoint: str,
        fields: Dict[str, str],
        signature: str,
        keyring: Optional[Dict[str, str]] = None
    ) -> None:
        self._type = cert_type
        self._serial_number = serial_number
        self._subject = subject.lower()
        self._certifier = certifier.lower()
        self._revocation_outpoint = revocation_outpoint
        self._fields = dict(fields)
        self._signature = signature
        self._keyring = dict(keyring or {})

    @property
    def type(self) -> str: return self._type
    @property
    def serial_number(self) -> str: return self._serial_number
    @property
    def subject(self) -> str: return self._subject
    @property
    def certifier(self) -> str: return self._certifier
    @property
    def revocation_outpoint(self) -> str: return self._revocation_outpoint
    @property
    def fields(self) -> Dict[str, str]: return dict(self._fields)
    @property
    def keyring(self) -> Dict[str, str]: return dict(self._keyring)
    @property
    def signature(self) -> str: return self._signature

    def revocation_reference(self) -> Tuple[str, int]:
        txid, _, index = self._revocation_outpoint.rpartition(".")
        if not txid or not index.isdigit():
            raise ValueError(f"revocationOutpoint inválido: {self._revocation_outpoint}")
        if int(index) > 0xFFFFFFFF:
            raise ValueError(f"Índice de revocationOutpoint fuera de rango: {index}")
        return txid, int(index)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Certificate':
        missing = [k for k in Certificate._REQUIRED if k not in data]
        if missing:
            raise ValueError(f"Certificado incompleto, faltan: {', '.join(missing)}")

        fields = data["fields"]
        keyring = data.get("keyring") or {}
        if not isinstance(fields, dict) or not isinstance(keyring, dict):
            raise ValueError("'fields' y 'keyring' deben ser objetos.")
        for key in ("type", "serialNumber", "subject", "certifier", "revocationOutpoint", "signature"):
            if not isinstance(data[key], str):
                raise ValueError(f"'{key}' debe ser texto.")

        return Certificate(
            cert_type=data["type"],
            serial_number=data["serialNumber"],
            subject=data["subject"],
            certifier=data["certifier"],
            revocation_outpoint=data["revocationOutpoint"],
            fields={str(k): str(v) for k, v in fields.items()},
            signature=data["signature"],
            keyring={str(k): str(v) for k, v in keyring.items()}
        )

    def to_dict(self, decrypted_fields: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        return {
            "type": self._type,
            "serialNumber": self._serial_number,
            "subject": self._subject,
            "certifier": self._certifier,
            "revocationOutpoint": self._revocation_outpoint,
            "fields": dict(decrypted_fields) if decrypted_fields is not None else dict(self._fields),
            "keyring": dict(self._keyring),
            "signature": self._signature
        }
