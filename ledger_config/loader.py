"""
Configuration loader (``ledger_config.loader``).

Responsibility
--------------
Reads the packaged defaults (``defaults/ledger.yaml``), merges an optional
operator file over them, applies environment overrides, and parses the
result into the frozen dataclasses of ``ledger_config.schema``.

Architecture position
---------------------
Config layer.  May import the kernel (to validate group and voucher-type
names); the kernel never imports this package.

Failure modes
-------------
* Missing file named explicitly or via ``LEDGER_CONFIG`` -> ``FileNotFoundError``.
* Malformed YAML -> ``yaml.YAMLError`` propagates.
* Unknown ledger group / voucher type / balance treatment, or a bad
  financial-year start -> ``ConfigurationError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from ledger_config.schema import (
    BalanceTreatment,
    DatabaseSettings,
    FinancialYearSettings,
    ImportSettings,
    LedgerSettings,
    normalize_label,
)
from ledger_kernel.domain.nature import LedgerGroup
from ledger_kernel.exceptions import ConfigurationError
from ledger_kernel.models.voucher import VoucherType

DEFAULTS_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"
CONFIG_ENV = "LEDGER_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"

# Keys whose mapping values are merged entry by entry rather than replaced.
_MERGED_MAPS = ("group_labels", "voucher_type_labels")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load one YAML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def merge_settings(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Section-wise merge; label maps merge entry by entry."""
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in base.items()}
    for section, values in override.items():
        if not isinstance(values, dict) or not isinstance(merged.get(section), dict):
            merged[section] = values
            continue
        target = merged[section]
        for key, value in values.items():
            if key in _MERGED_MAPS and isinstance(value, dict):
                target[key] = {**target.get(key, {}), **value}
            else:
                target[key] = value
    return merged


def parse_database(data: Mapping[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(
        url=str(data.get("url", DatabaseSettings.url)),
        echo=bool(data.get("echo", False)),
    )


def parse_financial_year(data: Mapping[str, Any], source: str) -> FinancialYearSettings:
    month = int(data.get("start_month", 4))
    day = int(data.get("start_day", 1))
    if not 1 <= month <= 12:
        raise ConfigurationError(source, f"financial_year.start_month {month} is not a month")
    # 29-31 would not exist in every year
    if not 1 <= day <= 28:
        raise ConfigurationError(source, f"financial_year.start_day {day} must be 1-28")
    return FinancialYearSettings(start_month=month, start_day=day)


def parse_import(data: Mapping[str, Any], source: str) -> ImportSettings:
    group_labels: dict[str, str] = {}
    for label, target in (data.get("group_labels") or {}).items():
        group = LedgerGroup.from_label(target)
        if group is None:
            raise ConfigurationError(
                source, f"group_labels[{label!r}] -> {target!r} is not a ledger group"
            )
        group_labels[normalize_label(label)] = group.value

    type_labels: dict[str, str] = {}
    for label, target in (data.get("voucher_type_labels") or {}).items():
        try:
            type_labels[normalize_label(label)] = VoucherType(str(target).strip().lower()).value
        except ValueError as exc:
            raise ConfigurationError(
                source, f"voucher_type_labels[{label!r}] -> {target!r} is not a voucher type"
            ) from exc

    try:
        treatment = BalanceTreatment(str(data.get("balance_treatment", "as_is")).lower())
    except ValueError as exc:
        raise ConfigurationError(
            source, f"balance_treatment {data.get('balance_treatment')!r} is not recognized"
        ) from exc

    return ImportSettings(
        group_labels=MappingProxyType(group_labels),
        voucher_type_labels=MappingProxyType(type_labels),
        bank_tokens=tuple(
            normalize_label(token) for token in (data.get("bank_tokens") or []) if str(token).strip()
        ),
        cash_bank_label=normalize_label(data.get("cash_bank_label", "CASH/Bank")),
        suspense_ledger_name=str(data.get("suspense_ledger_name", "Suspense")).strip(),
        balance_treatment=treatment,
    )


def load_settings(
    path: Path | str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Build the effective settings.

    Order of precedence (last wins): packaged defaults, ``path`` (or the
    file named by ``LEDGER_CONFIG``), ``DATABASE_URL``.

    Args:
        path: Optional operator YAML file.
        environ: Environment to read; defaults to ``os.environ``.
    """
    env = os.environ if environ is None else environ
    sources = [str(DEFAULTS_PATH)]
    data = load_yaml_file(DEFAULTS_PATH)

    override_path = path if path is not None else env.get(CONFIG_ENV)
    if override_path:
        override_path = Path(override_path)
        data = merge_settings(data, load_yaml_file(override_path))
        sources.append(str(override_path))

    database = parse_database(data.get("database") or {})
    if env.get(DATABASE_URL_ENV):
        database = DatabaseSettings(url=env[DATABASE_URL_ENV], echo=database.echo)
        sources.append(DATABASE_URL_ENV)

    source = sources[-1]
    return LedgerSettings(
        database=database,
        financial_year=parse_financial_year(data.get("financial_year") or {}, source),
        importer=parse_import(data.get("import") or {}, source),
        sources=tuple(sources),
    )
