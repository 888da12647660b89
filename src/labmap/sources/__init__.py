"""
Config source adapters.

open_source picks an adapter from a location string so the command line only
has to take one --map option.
"""

from __future__ import annotations

from pathlib import Path

from labmap.sources.base import ConfigSource, StaticSource
from labmap.sources.directory import DirectorySource
from labmap.sources.keyvalue import KeyValueSource
from labmap.sources.static import JsonFileSource, LineFileSource


def open_source(location: str) -> ConfigSource:
    """
    Build a source for location.

    http:// or https:// is a key value service.
    An existing directory is a DirectorySource.
    A .json file is a JsonFileSource.
    Anything else is read as a positional lab map.
    """
    if location.startswith(("http://", "https://")):
        return KeyValueSource(base_url=location)

    path = Path(location)
    if path.is_dir():
        return DirectorySource(root=path)
    if path.suffix == ".json":
        return JsonFileSource(path=path)
    return LineFileSource(path=path)


__all__ = [
    "ConfigSource",
    "DirectorySource",
    "JsonFileSource",
    "KeyValueSource",
    "LineFileSource",
    "StaticSource",
    "open_source",
]
