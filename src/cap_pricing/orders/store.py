"""
JSON file store shared by the order and invoice services.
"""
import json
from pathlib import Path


class JsonStore:
    """A single JSON document holding named collections of records."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self, collection: str) -> list[dict]:
        """All records of a collection; an absent file is an empty store."""
        if not self.path.exists():
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return list(data.get(collection, []))

    def write(self, collection: str, records: list[dict]):
        """Replace a collection, keeping the others."""
        data = {}
        if self.path.exists():
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        data[collection] = records

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self.path)
