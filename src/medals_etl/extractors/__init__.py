from importlib import import_module
from typing import Any, Callable, Dict, List

from .base import ExtractContext

EXTRACTOR_MODULES = [
    "feed",
    "blob",
    "table",
]

Extractor = Callable[[Any, ExtractContext], List[Any]]


def build_registry() -> Dict[str, Extractor]:
    registry: Dict[str, Extractor] = {}
    for mod_name in EXTRACTOR_MODULES:
        mod = import_module(f"medals_etl.extractors.{mod_name}")
        registry[mod.NAME] = mod.extract
    return registry


def get_extractor(name: str) -> Extractor:
    registry = build_registry()
    if name not in registry:
        raise ValueError(f"Unknown extractor: {name}")
    return registry[name]
