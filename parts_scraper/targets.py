# targets.py
import logging
from pathlib import Path
from typing import List, Optional, Union

import orjson

from .errors import TargetSourceError
from .schema import Target

logger = logging.getLogger(__name__)


def parse_targets(data, url_field: str = "product_link") -> List[Target]:
    """
    Input is a JSON array of objects like [{"product_link": "https://..."}, ...].
    Anything else is fatal: a run never starts on a half-understood list.
    """
    if not isinstance(data, list):
        raise TargetSourceError(f"target list must be a JSON array, got {type(data).__name__}")

    targets: List[Target] = []
    for i, row in enumerate(data):
        if not isinstance(row, dict):
            raise TargetSourceError(f"record {i} is not an object")
        url = row.get(url_field)
        if not isinstance(url, str) or not url.strip():
            raise TargetSourceError(f"record {i} has no '{url_field}' url")
        targets.append(Target(url=url.strip()))
    return targets


def load_targets(
    path: Union[str, Path],
    url_field: str = "product_link",
    limit: Optional[int] = None,
) -> List[Target]:
    path = Path(path)
    logger.info("[TARGETS] Reading target list from %s", path)
    try:
        data = orjson.loads(path.read_bytes())
    except OSError as e:
        raise TargetSourceError(f"cannot read {path}: {e}") from e
    except orjson.JSONDecodeError as e:
        raise TargetSourceError(f"{path} is not valid JSON: {e}") from e

    targets = parse_targets(data, url_field)
    if limit is not None:
        targets = targets[:limit]
    logger.info("[TARGETS] Loaded %d targets.", len(targets))
    return targets
