# ovn/core/validators/inscription_validator.py

import json
import logging
from typing import Any, Dict, Iterable

from ovn.core.models.admission import OutputRejected, RejectionReason

logger = logging.getLogger(__name__)

class InscriptionValidator:
    """
    Reglas del JSON inscrito en los envelopes ordinal (BSV-20 / BSV-21):
        - 'p' dentro de los protocolos aceptados
        - 'op' es 'transfer' o 'deploy+mint'
        - 'amt' presente
        - una transferencia requiere 'id'
    """

    OPERATIONS = ("transfer", "deploy+mint")

    @staticmethod
    def parse(payload: bytes) -> Dict[str, Any]:
        try:
            parsed = json.loads(payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise OutputRejected(RejectionReason.INVALID_FIELD, "la inscripción no es JSON")
        if not isinstance(parsed, dict):
            raise OutputRejected(RejectionReason.INVALID_FIELD, "la inscripción debe ser un objeto JSON")
        return parsed

    @staticmethod
    def check(payload: bytes, protocols: Iterable[str] = ("bsv-20",)) -> Dict[str, Any]:
        inscription = InscriptionValidator.parse(payload)

        if inscription.get("p") not in tuple(protocols):
            raise OutputRejected(RejectionReason.INVALID_FIELD, f"protocolo de inscripción no soportado: {inscription.get('p')!r}")
        op = inscription.get("op")
        if op not in InscriptionValidator.OPERATIONS:
            raise OutputRejected(RejectionReason.INVALID_FIELD, f"operación no soportada: {op!r}")
        if inscription.get("amt") is None:
            raise OutputRejected(RejectionReason.MISSING_FIELD, "falta 'amt'")
        if op == "transfer" and not inscription.get("id"):
            raise OutputRejected(RejectionReason.MISSING_FIELD, "una transferencia requiere 'id'")

        return inscription
