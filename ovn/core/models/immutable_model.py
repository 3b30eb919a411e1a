# ovn/core/models/immutable_model.py
from pydantic import BaseModel, ConfigDict

class ImmutableModel(BaseModel):
    """
    Clase base que fuerza la inmutabilidad (frozen=True).
    Garantiza que el estado del objeto no sea modificado después de crearse.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra='ignore'
    )
