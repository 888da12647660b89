"""Record parser package."""

from labmap.parser.records import ParseStats, derive_entry, parse_record

__all__ = ["ParseStats", "derive_entry", "parse_record"]
