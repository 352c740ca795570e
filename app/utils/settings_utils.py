import json
from pathlib import Path
from typing import Optional

import structlog

logger = structlog.stdlib.get_logger(__name__)


def load_routes_file(file_path: str) -> Optional[dict[str, str]]:
    """
    Load the route table from a JSON file.

    The file holds a JSON object of hostname -> upstream URL. A path that
    does not exist yields None so the caller keeps its other routes.

    Example:
        ROUTES_FILE=/etc/registry-proxy/routes.json
        {"docker.example.com": "https://registry-1.docker.io"}
    """
    path = Path(file_path)
    if not path.exists():
        logger.warning("Route table file not found", path=file_path)
        return None

    routes = json.loads(path.read_text())
    if not isinstance(routes, dict) or not all(
        isinstance(upstream, str) for upstream in routes.values()
    ):
        raise ValueError(f"{file_path} must contain a JSON object of URLs")

    logger.debug("Loaded route table", path=file_path, routes=len(routes))
    return routes
