# ovn/core/protocols/monster_battle.py
'''
Juego Monster Battle: ofertas de venta con contrato order-lock y transferencias de
ordinals BSV-21. Los outputs P2PKH (cambio) no pertenecen al tópico.
'''

import logging
from typing import Any, Dict, Optional

from ovn.core.config.protocol_constants import ProtocolConstants
from ovn.core.interfaces.i_admission_policy import IAdmissionPolicy, AdmissionContext
from ovn.core.models.admission import OutputRejected, RejectionReason
from ovn.core.models.admitted_output import AdmittedOutput
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.lookup_query import PaginatedQuery, parse_query
from ovn.core.models.record_query import RecordQuery
from ovn.core.models.tx_output import TxOutput
from ovn.core.protocols.protocol_definition import ProtocolDefinition, by_txid, paginated
from ovn.core.scripting.script import Script
from ovn.core.scripting.templates import get_template
from ovn.core.validators.inscription_validator import InscriptionValidator

logger = logging.getLogger(__name__)

ORDER_LOCK_PREFIX = Script.from_hex(
    "2097dfd76851bf465e8f715593b217714858bbe9570ff3bd5e33840a34e20ff026"
    "2102ba79df5f8ae7604a9830f03c7933028186aede0675a16f025dc4f8be8eec0382"
    "201008ce7480da41702918d1ec8e6849ba32b4d65b1e40dc669c31a1e6306b266c"
    "0000"
)

INSCRIPTION_PROTOCOLS = ("bsv-21", "bsv-20")


def classify(script: Script) -> str:
    if script.contains(ORDER_LOCK_PREFIX):
        return "order-lock"
    if get_template("p2pkh").matches(script):
        return "p2pkh"
    return "ordinal-transfer"


class MonsterBattlePolicy(IAdmissionPolicy):

    topic = ProtocolConstants.TM_MONSTER_BATTLE
    display_name = "MonsterBattle Topic Manager"
    short_description = "Monster battle game ordinals and order-lock listings."

    def check_output(self, output: TxOutput, index: int, context: AdmissionContext) -> None:
        script = Script.from_bytes(output.locking_script)
        category = classify(script)

        if category == "order-lock":
            return
        if category == "p2pkh":
            raise OutputRejected(RejectionReason.NOT_APPLICABLE, "P2PKH")

        template = get_template(category)
        if not template.matches(script):
            raise OutputRejected(RejectionReason.TEMPLATE_MISMATCH, f"no coincide con '{category}'")
        InscriptionValidator.check(template.extract(script)[0], INSCRIPTION_PROTOCOLS)


def extract_payload(notification: AdmittedOutput) -> Dict[str, Any]:
    return {"category": classify(Script.from_bytes(notification.locking_script))}


class MonsterBattleQuery(PaginatedQuery):
    txid: Optional[str] = None


def plan_query(query: Any) -> RecordQuery:
    q = parse_query(MonsterBattleQuery, query)
    if q.txid:
        return by_txid(q.txid, q)
    return paginated(q)


DEFINITION = ProtocolDefinition(
    name="MonsterBattle",
    topic=ProtocolConstants.TM_MONSTER_BATTLE,
    service_id=ProtocolConstants.LS_MONSTER_BATTLE,
    collection=IndexCollection(
        name="monsterBattleRecords",
        primary_field="txid",
        spend_mode=SpendMode.DELETE
    ),
    policy_factory=MonsterBattlePolicy,
    extract_payload=extract_payload,
    plan_query=plan_query,
    display_name="MonsterBattle Lookup Service",
    short_description="Lookup monster battle outputs.",
    documentation=(
        "# ls_monsterbattle\n"
        "Consultas: `txid` o todas, con `startDate`/`endDate`, `limit`, `skip` y `sortOrder`.\n"
    )
)
