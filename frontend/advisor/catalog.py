from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List

import requests
from pydantic import ValidationError

from .errors import CatalogLoadError
from .models import Catalog, Product

logger = logging.getLogger(__name__)


def _read_source(source: str, timeout: float) -> Any:
    if source.startswith(("http://", "https://")):
        resp = requests.get(source, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    return json.loads(Path(source).read_text(encoding="utf-8"))


def fetch_catalog(source: str, timeout: float = 30.0) -> List[Product]:
    """
    Load ``{"products": [...]}`` from a URL or a local file.

    Any network, decoding or schema problem surfaces as ``CatalogLoadError``.
    """
    try:
        data = _read_source(source, timeout)
    except (requests.RequestException, OSError, ValueError) as exc:
        logger.error("Catalog fetch failed", extra={"source": source, "error": str(exc)})
        raise CatalogLoadError(f"Could not read catalog from {source}: {exc}") from exc

    try:
        catalog = Catalog.model_validate(data)
    except ValidationError as exc:
        logger.error("Catalog has unexpected shape", extra={"source": source})
        raise CatalogLoadError(f"Catalog at {source} is malformed: {exc.error_count()} error(s)") from exc

    return catalog.products
