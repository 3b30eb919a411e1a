# ovn/tests/unit/test_config_manager.py
import sys
import os
import unittest
from unittest.mock import patch

# --- AJUSTE DE RUTA ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_dir, '../../..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from ovn.core.config.config_manager import ConfigManager
from ovn.core.config.paths import Paths
from ovn.infra.persistence.database_manager import DatabaseManager
from ovn.infra.persistence.repository_factory import RepositoryFactory
from ovn.infra.persistence.sqlite.sqlite_lookup_repository import SqliteLookupRepository

OVN_VARS = ("OVN_DEFAULT_LIMIT", "OVN_MAX_LIMIT", "OVN_LOCK_STRIPES", "OVN_ENABLED_TOPICS",
            "OVN_STORAGE_ENGINE", "OVN_DB_NAME", "OVN_DB_TIMEOUT")

class TestConfigManager(unittest.TestCase):

    def setUp(self):
        setattr(ConfigManager, "_instance", None)
        setattr(DatabaseManager, "_instance", None)

    def tearDown(self):
        DatabaseManager.reset()
        setattr(ConfigManager, "_instance", None)

    def test_defaults(self):
        print(">> Ejecutando: test_defaults...")
        with patch.dict(os.environ):
            for key in OVN_VARS:
                os.environ.pop(key, None)
            config = ConfigManager()

            self.assertEqual(config.default_limit, 50)
            self.assertEqual(config.max_limit, 1000)
            self.assertEqual(config.lookup.lock_stripes, 64)
            self.assertIsNone(config.admission.enabled_topics)
            self.assertTrue(config.admission.is_enabled("tm_cualquiera"))
            self.assertEqual(config.persistence.storage_engine, "sqlite")
            self.assertFalse(config.persistence.is_memory)
            self.assertEqual(
                config.persistence.db_path, os.path.join(str(Paths.INDEX_DB_DIR), "overlay_index.db")
            )

    def test_environment_overrides(self):
        print(">> Ejecutando: test_environment_overrides...")
        env_vars = {
            "OVN_DEFAULT_LIMIT": "10",
            "OVN_MAX_LIMIT": "20",
            "OVN_ENABLED_TOPICS": "tm_apps,tm_anytx",
            "OVN_DB_NAME": ":memory:",
            "OVN_STORAGE_ENGINE": "SQLITE"
        }
        with patch.dict(os.environ, env_vars):
            config = ConfigManager()

            self.assertEqual(config.default_limit, 10)
            self.assertEqual(config.max_limit, 20)
            self.assertEqual(config.admission.enabled_topics, ["tm_apps", "tm_anytx"])
            self.assertFalse(config.admission.is_enabled("tm_identity"))
            self.assertTrue(config.persistence.is_memory)
            self.assertEqual(config.persistence.db_path, ":memory:")

            # La fábrica lee el motor normalizado
            self.assertIsInstance(RepositoryFactory.get_lookup_repository(), SqliteLookupRepository)

    def test_load_from_json_dict(self):
        print(">> Ejecutando: test_load_from_json_dict...")
        config = ConfigManager()
        config.load_from_json_dict({
            "storage": {"db_name": "otro.db", "timeout_sec": 2},
            "lookup": {"default_limit": 5, "max_limit": 9, "lock_stripes": 0},
            "admission": {"topics": []}
        })

        self.assertEqual(config.persistence.db_name, "otro.db")
        self.assertEqual(config.persistence.timeout_sec, 2.0)
        self.assertEqual(config.default_limit, 5)
        self.assertEqual(config.max_limit, 9)
        # Nunca menos de una franja de locks
        self.assertEqual(config.lookup.lock_stripes, 1)
        self.assertIsNone(config.admission.enabled_topics)

    def test_singleton_and_reset(self):
        print(">> Ejecutando: test_singleton_and_reset...")
        first = ConfigManager()
        self.assertIs(first, ConfigManager())
        ConfigManager.reset()
        self.assertIsNot(first, ConfigManager())

if __name__ == "__main__":
    unittest.main()
