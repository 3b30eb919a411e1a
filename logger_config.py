# logger_config.py
import logging
import os
import glob
import sys
from typing import List, Optional

def setup_logging(log_dir: Optional[str] = None):
    # 1. Definir ruta: '<data>/logs' (OVN_DATA_DIR o 'data' junto a este archivo)
    if log_dir is None:
        ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
        data_dir = os.getenv("OVN_DATA_DIR", os.path.join(ROOT_DIR, "data"))
        log_dir = os.path.join(data_dir, "logs")

    os.makedirs(log_dir, exist_ok=True)

    # 2. Rotación de Archivos: siguiente número libre (overlay_0.log, overlay_1.log...)
    existentes: List[str] = glob.glob(os.path.join(log_dir, "overlay_*.log"))
    indices: List[int] = []
    for archivo in existentes:
        try:
            num = int(os.path.basename(archivo).split('_')[-1].split('.')[0])
            indices.append(num)
        except (ValueError, IndexError): continue

    siguiente: int = max(indices) + 1 if indices else 0
    nombre_archivo: str = os.path.join(log_dir, f"overlay_{siguiente}.log")

    # 3. Configurar el Root Logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # Limpiamos handlers anteriores para evitar duplicados si se llama dos veces
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # --- CANAL 1: ARCHIVO (historial detallado) ---
    fh = logging.FileHandler(nombre_archivo, encoding='utf-8')
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] [%(name)s]: %(message)s'))

    # --- CANAL 2: TERMINAL (solo ERRORES o CRÍTICOS) ---
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(logging.ERROR)
    ch.setFormatter(logging.Formatter('\n❌ ERROR EN: %(name)s | Línea: %(lineno)d\nDetalle: %(message)s\n'))

    root_logger.addHandler(fh)
    root_logger.addHandler(ch)

    # logger.info no sale por consola: avisamos con print dónde está el log
    print(f"📝 Log de sesión guardado en: {nombre_archivo}")
    return nombre_archivo
