import os
import sys
import json
import argparse
import logging

import uvicorn

from typing import Any, Dict, Optional

# =========================================================
# ⚡ CONFIGURACIÓN INICIAL DEL SISTEMA
# =========================================================

ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.append(ROOT_DIR)

logger = logging.getLogger()

# =========================================================
# 🛠️ FUNCIONES DE UTILIDAD
# =========================================================

def load_config(config_name: Optional[str]) -> Dict[str, Any]:
    """Carga el archivo JSON de configuración (opcional)."""
    if not config_name:
        return {}

    config_path = os.path.join(ROOT_DIR, 'config', config_name)
    if not os.path.exists(config_path):
        if os.path.exists(config_name):
            config_path = config_name
        else:
            print(f"❌ No existe el archivo de configuración: {config_path}")
            sys.exit(1)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        print(f"❌ JSON Corrupto en {config_name}: {e}")
        sys.exit(1)

def inject_environment(config: Dict[str, Any], instance_name: str, api_port: Optional[int]) -> int:
    """Inyecta la configuración en Variables de Entorno (antes de importar el core)."""
    os.environ["OVN_DATA_DIR"] = os.path.join(ROOT_DIR, "data", instance_name)

    storage = config.get("storage", {})
    os.environ["OVN_STORAGE_ENGINE"] = storage.get("engine", os.getenv("OVN_STORAGE_ENGINE", "sqlite"))
    os.environ["OVN_DB_NAME"] = storage.get("db_name", os.getenv("OVN_DB_NAME", "overlay_index.db"))

    topics = config.get("admission", {}).get("topics")
    if topics:
        os.environ["OVN_ENABLED_TOPICS"] = ",".join(topics) if isinstance(topics, list) else str(topics)

    api = config.get("api", {})
    os.environ["OVN_API_HOST"] = api.get("host", "0.0.0.0")
    port = api_port or api.get("port_default", 8080)
    os.environ["OVN_API_PORT"] = str(port)
    return int(port)

# =========================================================
# 🚀 ENTRY POINT PRINCIPAL
# =========================================================

def main():
    parser = argparse.ArgumentParser(description="Lanzador del nodo overlay")

    parser.add_argument("config", nargs="?", help="Nombre del archivo JSON en config/")
    parser.add_argument("--name", default="default", help="Nombre único de la instancia")
    parser.add_argument("--api", type=int, help="Forzar puerto API")

    args = parser.parse_args()

    config_data = load_config(args.config)
    final_api_port = inject_environment(config_data, args.name, args.api)

    import logger_config
    logger_config.setup_logging()

    # --- IMPORTS DEL CORE (después de fijar el entorno) ---
    from ovn.core.config.config_manager import ConfigManager
    from ovn.core.config.paths import Paths

    Paths.ensure_directories_exist()
    ConfigManager().load_from_json_dict(config_data)

    print("\n" + "="*60)
    print(f"🛰️ INICIANDO NODO OVERLAY: {args.name}")
    print(f"🌐 API Disponible en: http://{os.environ['OVN_API_HOST']}:{final_api_port}")
    print("="*60 + "\n")

    uvicorn.run(
        "ovn.interface.api.server:app",
        host=os.environ["OVN_API_HOST"],
        port=final_api_port,
        log_level="info"
    )

if __name__ == "__main__":
    main()
