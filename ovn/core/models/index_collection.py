# ovn/core/models/index_collection.py

import re
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple

_NAME_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

class SpendMode(str, Enum):
    DELETE = "delete"       # el registro desaparece al gastarse
    ANNOTATE = "annotate"   # el registro se conserva con spendingTxid


@dataclass(frozen=True)
class IndexCollection:
    """
    Configuración de la colección lógica de un protocolo.

    primary_field: ruta del payload con índice secundario (su consulta principal).
    dedupe_fields: rutas que definen la identidad semántica del payload; si no es vacío,
                   no se insertan dos registros con los mismos valores.
    """
    name: str
    primary_field: Optional[str] = None
    spend_mode: SpendMode = SpendMode.DELETE
    dedupe_fields: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not _NAME_RE.match(self.name):
            raise ValueError(f"Nombre de colección inválido: {self.name!r}")
