# ovn/core/config/admission_config.py
import os
from typing import Dict, Any, List, Optional

class AdmissionConfig:
    """
    Define qué tópicos (protocolos) atiende este nodo.
    OVN_ENABLED_TOPICS vacío significa 'todos los registrados'.
    """
    def __init__(self):
        raw = os.getenv("OVN_ENABLED_TOPICS", "")
        self._enabled_topics: Optional[List[str]] = self._parse(raw)

    @staticmethod
    def _parse(raw: str) -> Optional[List[str]]:
        topics = [t.strip() for t in raw.split(",") if t.strip()]
        return topics or None

    @property
    def enabled_topics(self) -> Optional[List[str]]:
        return list(self._enabled_topics) if self._enabled_topics else None

    def is_enabled(self, topic: str) -> bool:
        return self._enabled_topics is None or topic in self._enabled_topics

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        if not data: return

        if "topics" in data:
            topics = data["topics"]
            if isinstance(topics, str):
                self._enabled_topics = self._parse(topics)
            else:
                self._enabled_topics = [str(t) for t in topics] or None
