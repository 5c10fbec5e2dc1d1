"""
Filesystem record store.

Layout under the storage path:
    datasets/{dataset}.jsonl       one JSON record per line, append-only
    key_value_store/{key}.json     JSON values
    key_value_store/{key}.html     text/html values
"""

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from harvester.contexts.storage.config import StorageConfig
from harvester.contexts.storage.store import HTML_CONTENT_TYPE, RecordStore


class LocalRecordStore(RecordStore):
    def __init__(self, config: StorageConfig):
        self.config = config
        self.root = Path(config.path)
        self.dataset_path = self.root / "datasets" / f"{config.dataset}.jsonl"
        self.kv_dir = self.root / "key_value_store"
        self._lock = threading.Lock()

        self.dataset_path.parent.mkdir(parents=True, exist_ok=True)
        self.kv_dir.mkdir(parents=True, exist_ok=True)

    def push_records(self, records: List[Dict]) -> None:
        if not records:
            return
        lines = "".join(json.dumps(record, ensure_ascii=False) + "\n" for record in records)
        with self._lock:
            with open(self.dataset_path, "a", encoding="utf-8") as f:
                f.write(lines)
        logger.debug(f"Appended {len(records)} records to {self.dataset_path}")

    def read_records(self) -> List[Dict]:
        """Every record pushed so far, in push order."""
        if not self.dataset_path.exists():
            return []
        with open(self.dataset_path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    def _path_for(self, key: str, content_type: Optional[str]) -> Path:
        suffix = ".html" if content_type == HTML_CONTENT_TYPE else ".json"
        return self.kv_dir / f"{key}{suffix}"

    def set_value(self, key: str, value: Any, content_type: Optional[str] = None) -> None:
        path = self._path_for(key, content_type)
        with self._lock:
            if content_type == HTML_CONTENT_TYPE:
                path.write_text(str(value), encoding="utf-8")
            else:
                with open(path, "w", encoding="utf-8") as f:
                    json.dump(value, f, indent=2, ensure_ascii=False)

    def get_value(self, key: str) -> Any:
        json_path = self._path_for(key, None)
        if json_path.exists():
            with open(json_path, "r", encoding="utf-8") as f:
                return json.load(f)

        html_path = self._path_for(key, HTML_CONTENT_TYPE)
        if html_path.exists():
            return html_path.read_text(encoding="utf-8")
        return None
