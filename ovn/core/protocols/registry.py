# ovn/core/protocols/registry.py
'''
Catálogo de protocolos conocidos por el nodo.

    all_definitions() -> List[ProtocolDefinition]
    by_topic(topic) -> ProtocolDefinition
    by_service(service_id) -> ProtocolDefinition
'''

from typing import Dict, List

from ovn.core.protocols import (
    any_tx, apps, desktop_integrity, fractionalize, identity, message_box,
    monster_battle, slack_threads, supply_chain, token_demo, wallet_config
)
from ovn.core.protocols.protocol_definition import ProtocolDefinition

_DEFINITIONS: List[ProtocolDefinition] = [
    identity.DEFINITION,
    wallet_config.DEFINITION,
    message_box.DEFINITION,
    apps.DEFINITION,
    token_demo.DEFINITION,
    any_tx.DEFINITION,
    fractionalize.DEFINITION,
    supply_chain.DEFINITION,
    slack_threads.DEFINITION,
    desktop_integrity.DEFINITION,
    monster_battle.DEFINITION,
]

_BY_TOPIC: Dict[str, ProtocolDefinition] = {d.topic: d for d in _DEFINITIONS}
_BY_SERVICE: Dict[str, ProtocolDefinition] = {d.service_id: d for d in _DEFINITIONS}


def all_definitions() -> List[ProtocolDefinition]:
    return list(_DEFINITIONS)


def by_topic(topic: str) -> ProtocolDefinition:
    definition = _BY_TOPIC.get(topic)
    if definition is None:
        raise KeyError(f"Tópico desconocido: {topic}")
    return definition


def by_service(service_id: str) -> ProtocolDefinition:
    definition = _BY_SERVICE.get(service_id)
    if definition is None:
        raise KeyError(f"Servicio de consulta desconocido: {service_id}")
    return definition
