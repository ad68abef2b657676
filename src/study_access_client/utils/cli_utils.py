import json
from pathlib import Path
from rich.console import Console

def get_rich_console() -> Console: return Console(stderr=True)

def read_json_file(path: Path) -> dict:
    """Читает JSON-файл запроса (например, UpdateRequest) для CLI."""
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)
