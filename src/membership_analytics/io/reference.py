from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CountryReference:
    """Immutable code <-> display-name lookup built once at startup.

    ``code_to_name`` holds the ISO alpha-2 codes; postal aliases such as
    ``USA`` live in ``alias_to_code`` and resolve to their ISO code.
    ``name_to_code`` is keyed by upper-cased display name and keeps the
    insertion order of the source table, which is the order used for
    substring matching.
    """

    code_to_name: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    name_to_code: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    alias_to_code: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __len__(self) -> int:
        return len(self.code_to_name)

    def code_for(self, code: str) -> str | None:
        key = str(code).strip().upper()
        if key in self.code_to_name:
            return key
        return self.alias_to_code.get(key)

    def name_for(self, code: str) -> str | None:
        primary = self.code_for(code)
        return self.code_to_name[primary] if primary else None


def build_country_reference(rows: Iterable[Mapping[str, str | None]]) -> CountryReference:
    code_to_name: dict[str, str] = {}
    name_to_code: dict[str, str] = {}
    alias_to_code: dict[str, str] = {}
    for row in rows:
        code = (row.get("code") or "").strip().upper()
        name = (row.get("name") or "").strip()
        if not code or not name:
            continue
        if code in code_to_name and code_to_name[code] != name:
            raise ValueError(f"Country code {code} maps to both {code_to_name[code]} and {name}")
        code_to_name[code] = name
        name_to_code.setdefault(name.upper(), code)

        postal = (row.get("postal") or "").strip().upper()
        if postal and postal != code:
            alias_to_code.setdefault(postal, code)

    # An alias never shadows a real ISO code.
    aliases = {alias: code for alias, code in alias_to_code.items() if alias not in code_to_name}
    return CountryReference(
        code_to_name=MappingProxyType(code_to_name),
        name_to_code=MappingProxyType(name_to_code),
        alias_to_code=MappingProxyType(aliases),
    )


def load_country_reference(path: str | Path | None) -> CountryReference:
    if not path:
        LOGGER.warning("No country reference configured; every country resolves to Unknown")
        return CountryReference()
    file_path = Path(path)
    if not file_path.exists():
        raise ValueError(f"Country reference file not found: {file_path}")

    with file_path.open("r", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        missing = {"code", "name"} - set(reader.fieldnames or [])
        if missing:
            raise ValueError(
                f"Country reference {file_path} missing columns: {', '.join(sorted(missing))}"
            )
        reference = build_country_reference(reader)
    LOGGER.info("Loaded %d country codes from %s", len(reference), file_path)
    return reference
