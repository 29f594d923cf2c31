import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from bus_tracking import config
from bus_tracking.eta.models import Route

logger = logging.getLogger(__name__)


def _data_file(filename: str, data_dir: Optional[Path] = None) -> Path:
    file_path = Path(data_dir or config.DATA_DIR) / f"{filename}.json"
    file_path.parent.mkdir(parents=True, exist_ok=True)
    return file_path


# Helper function to load data from JSON files
def load_data(filename: str, data_dir: Optional[Path] = None) -> List[Dict[str, Any]]:
    file_path = _data_file(filename, data_dir)
    if not file_path.exists():
        with open(file_path, 'w') as f:
            json.dump([], f)
    with open(file_path, 'r') as f:
        return json.load(f)

# Helper function to save data to JSON files
def save_data(filename: str, data, data_dir: Optional[Path] = None):
    file_path = _data_file(filename, data_dir)
    with open(file_path, 'w') as f:
        json.dump(data, f, indent=4)


def load_routes(data_dir: Optional[Path] = None) -> Dict[int, Route]:
    """Route records keyed by id; malformed entries are skipped."""
    routes = {}
    for raw in load_data("routes", data_dir):
        try:
            route = Route(**raw)
        except ValidationError as exc:
            logger.warning("Skipping invalid route record %s: %s", raw.get("id"), exc)
            continue
        routes[route.id] = route
    return routes
