# ovn/tests/unit/test_lookup_index.py
'''
Test Suite para LookupIndex:
    Ciclo de vida de los registros (store / spend / evict), límites de paginación
    y concurrencia sobre la conexión compartida.
'''

import sys
import os
import threading
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

# --- AJUSTE DE RUTA ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_dir, '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ovn.core.config.config_manager import ConfigManager
from ovn.core.interfaces.i_lookup_repository import ILookupRepository
from ovn.core.managers.lookup_index import LookupIndex, value_at
from ovn.core.models.index_collection import IndexCollection, SpendMode
from ovn.core.models.output_reference import OutputReference
from ovn.core.models.record_query import FieldCondition, Operator, RecordQuery
from ovn.infra.persistence.database_manager import DatabaseManager
from ovn.infra.persistence.sqlite.sqlite_lookup_repository import SqliteLookupRepository

def ref(n: int, index: int = 0) -> OutputReference:
    return OutputReference(f"{n:064x}", index)

class TestLookupIndex(unittest.TestCase):

    def setUp(self):
        setattr(DatabaseManager, "_instance", None)
        setattr(ConfigManager, "_instance", None)
        config = ConfigManager()
        config.persistence._db_name = ":memory:" # type: ignore
        self.repo = SqliteLookupRepository()

        self.deleting = LookupIndex(self.repo, IndexCollection("threadsTest", "threadHash", SpendMode.DELETE))
        self.annotating = LookupIndex(self.repo, IndexCollection("anyTest", "txid", SpendMode.ANNOTATE))

    def tearDown(self):
        DatabaseManager.reset()
        setattr(ConfigManager, "_instance", None)

    def test_spend_deletes(self):
        self.assertTrue(self.deleting.store(ref(1), {"threadHash": "aa"}))
        self.assertTrue(self.deleting.spend(ref(1)))
        self.assertIsNone(self.deleting.get(ref(1)))
        # Gastar algo inexistente no es un error
        self.assertFalse(self.deleting.spend(ref(1)))

    def test_spend_annotates(self):
        self.annotating.store(ref(2), {})
        self.assertTrue(self.annotating.spend(ref(2), "ee" * 32))

        record = self.annotating.get(ref(2))
        self.assertTrue(record.is_spent)
        self.assertEqual(record.to_dict()["spendingTxid"], "ee" * 32)
        # El registro sigue apareciendo en las consultas
        self.assertEqual(self.annotating.find(RecordQuery.where()), [ref(2)])

    def test_annotate_requires_spending_txid(self):
        self.annotating.store(ref(3), {})
        with self.assertRaises(ValueError):
            self.annotating.spend(ref(3))

    def test_evict_ignores_spend_mode(self):
        self.annotating.store(ref(4), {})
        self.assertTrue(self.annotating.evict(ref(4)))
        self.assertEqual(self.annotating.count(), 0)
        self.assertFalse(self.annotating.evict(ref(4)))

    def test_queries_are_bounded(self):
        config = ConfigManager().lookup
        config._default_limit = 2 # type: ignore
        config._max_limit = 3 # type: ignore
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for n in range(5):
            self.deleting.store(ref(10 + n), {"threadHash": f"{n:02x}"}, start + timedelta(minutes=n))

        self.assertEqual(len(self.deleting.find(RecordQuery.where())), 2)
        self.assertEqual(len(self.deleting.find(RecordQuery.where(limit=100))), 3)
        self.assertEqual(self.deleting.find(RecordQuery.where(limit=1)), [ref(14)])
        # limit=0 es válido y no devuelve nada
        self.assertEqual(self.deleting.find(RecordQuery.where(limit=0)), [])

    def test_dedupe_uses_payload_values(self):
        repository = MagicMock(spec=ILookupRepository)
        repository.insert.return_value = False
        collection = IndexCollection("walletTest", dedupe_fields=("registration.configID", "registration.wab"))
        index = LookupIndex(repository, collection, lock_stripes=4)

        stored = index.store(ref(20), {"registration": {"configID": "c1"}})

        self.assertFalse(stored)
        _, _, dedupe = repository.insert.call_args[0]
        self.assertEqual(dedupe, [
            FieldCondition("registration.configID", Operator.EQ, "c1"),
            FieldCondition("registration.wab", Operator.EQ, None),
        ])
        repository.ensure_collection.assert_called_once_with(collection)

    def test_concurrent_stores_and_spends(self):
        errors = []

        def worker(offset: int) -> None:
            try:
                for n in range(20):
                    reference = ref(1000 + offset * 100 + n)
                    self.deleting.store(reference, {"threadHash": f"{offset}-{n}"})
                    if n % 2 == 0:
                        self.deleting.spend(reference)
            except Exception as e: # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(self.deleting.count(), 6 * 10)

    def test_value_at(self):
        payload = {"a": {"b": {"c": 1}}, "x": [1, 2]}
        self.assertEqual(value_at(payload, "a.b.c"), 1)
        self.assertIsNone(value_at(payload, "a.z"))
        self.assertIsNone(value_at(payload, "x.0"))

if __name__ == '__main__':
    unittest.main()
