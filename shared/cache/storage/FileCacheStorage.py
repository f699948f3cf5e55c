import json
import os

from shared.cache.storage.CacheStorageInterface import CacheStorageInterface


class FileCacheStorage(CacheStorageInterface):
    """Keeps the envelope in a single JSON file. The directory is created on first write."""

    def __init__(self, file_path: str):
        self._file_path = file_path

    def read(self) -> dict | None:
        if not os.path.exists(self._file_path):
            return None
        with open(self._file_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def write(self, envelope: dict) -> None:
        directory = os.path.dirname(self._file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        # write next to the target and swap, so readers never see a half written file
        tmp_path = f"{self._file_path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(envelope, f)
        os.replace(tmp_path, self._file_path)

    def describe(self) -> str:
        return self._file_path
