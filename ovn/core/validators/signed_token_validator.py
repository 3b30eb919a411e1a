# ovn/core/validators/signed_token_validator.py

import json
import logging
from typing import Any, Dict, Optional, Union

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.models.admission import OutputRejected, RejectionReason
from ovn.core.models.decoded_script import DecodedScript
from ovn.core.scripting.pushdrop import PushDrop
from ovn.core.services.key_deriver import NamespaceLike
from ovn.core.services.signature_linkage_verifier import SignatureLinkageVerifier

logger = logging.getLogger(__name__)

class SignedTokenValidator:
    """
    Comprobaciones comunes de los tokens PushDrop firmados:
    presencia de campos, decodificación de texto/JSON y vinculación con la identidad.
    """

    @staticmethod
    def decode(locking_script: bytes) -> DecodedScript:
        return PushDrop.decode(locking_script)

    @staticmethod
    def require_fields(decoded: DecodedScript, minimum: int, exact: Optional[int] = None) -> None:
        count = len(decoded)
        if exact is not None and count != exact:
            raise OutputRejected(RejectionReason.INVALID_FIELD, f"se esperaban {exact} campos, hay {count}")
        if count < minimum:
            raise OutputRejected(RejectionReason.MISSING_FIELD, f"se esperaban al menos {minimum} campos, hay {count}")

    @staticmethod
    def utf8(value: bytes, name: str) -> str:
        try:
            return value.decode('utf-8')
        except UnicodeDecodeError:
            raise OutputRejected(RejectionReason.INVALID_FIELD, f"'{name}' no es UTF-8")

    @staticmethod
    def json_object(value: Union[bytes, str], name: str) -> Dict[str, Any]:
        text = SignedTokenValidator.utf8(value, name) if isinstance(value, bytes) else value
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            raise OutputRejected(RejectionReason.INVALID_FIELD, f"'{name}' no es JSON")
        if not isinstance(parsed, dict):
            raise OutputRejected(RejectionReason.INVALID_FIELD, f"'{name}' debe ser un objeto JSON")
        return parsed

    @staticmethod
    def non_empty(value: Optional[bytes], name: str) -> bytes:
        if not value:
            raise OutputRejected(RejectionReason.MISSING_FIELD, f"'{name}' vacío")
        return value

    @staticmethod
    def check_identity_linkage(
        decoded: DecodedScript,
        identity_key: str,
        namespace: NamespaceLike,
        verifier: SignatureLinkageVerifier,
        key_id: str = ProtocolConstants.DEFAULT_KEY_ID
    ) -> None:
        """
        (a) la clave de bloqueo deriva de la identidad bajo `namespace`;
        (b) la concatenación de los campos no-firma fue firmada por la identidad.
        """
        if decoded.embedder_key is None:
            raise OutputRejected(RejectionReason.KEY_NOT_LINKED, "el script no declara clave de bloqueo")

        if not verifier.is_key_linked(decoded.embedder_key, identity_key, namespace, key_id):
            raise OutputRejected(RejectionReason.KEY_NOT_LINKED, f"clave no derivada de {identity_key[:10]}...")

        _, signature = decoded.split_signature()
        if not verifier.verify(decoded.signed_payload(), signature, identity_key, namespace, key_id):
            raise OutputRejected(RejectionReason.INVALID_SIGNATURE, "firma de campos inválida")
