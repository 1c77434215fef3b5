"""CSV export/import of par times and RVU values.

Four columns, fixed header:

    Setting Type,Key,Value,Modality
    Par Time,CT,240,
    RVU,CT,1.0,
    RVU,+1 Section,0.5,CT

Import starts from the defaults and applies every row it can parse; a bad row
is skipped without touching the rows around it.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path

from .configuration import Configuration

logger = logging.getLogger("radtach.exchange")

HEADER = ["Setting Type", "Key", "Value", "Modality"]
PAR_TIME = "Par Time"
RVU = "RVU"


@dataclass
class ImportReport:
    config: Configuration
    applied: int = 0
    skipped: list[int] = field(default_factory=list)  # 1-based line numbers


def export_rows(config: Configuration) -> list[list[str]]:
    rows = [list(HEADER)]
    for key, value in config.target_seconds.items():
        rows.append([PAR_TIME, key, str(value), ""])
    for key, value in config.unit_values.items():
        if isinstance(value, dict):
            for kind, rvu in value.items():
                rows.append([RVU, key, str(rvu), kind])
        else:
            rows.append([RVU, key, str(value), ""])
    return rows


def export_csv(config: Configuration) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows(export_rows(config))
    return buf.getvalue()


def write_csv(config: Configuration, path: Path) -> None:
    path.write_text(export_csv(config), encoding="utf-8")
    logger.info(f"Exported settings to {path}")


def _apply_row(config: Configuration, row: list[str]) -> bool:
    if len(row) < 3:
        return False
    setting_type, key, value = (cell.strip() for cell in row[:3])
    kind = row[3].strip() if len(row) > 3 else ""
    if not key:
        return False

    if setting_type == PAR_TIME:
        try:
            seconds = int(float(value))
        except (ValueError, OverflowError):
            return False
        config.set_target(key, seconds)
        return True

    if setting_type == RVU:
        try:
            rvu = float(value)
        except ValueError:
            return False
        if not math.isfinite(rvu):
            return False
        config.set_unit_value(key, rvu, kind or None)
        return True

    return False


def parse_csv(text: str) -> ImportReport:
    """Build a configuration from CSV text, skipping the header and bad rows."""
    report = ImportReport(config=Configuration.defaults())
    reader = csv.reader(io.StringIO(text))
    for line_no, row in enumerate(reader, start=1):
        if line_no == 1:
            continue
        if not any(cell.strip() for cell in row):
            continue
        if _apply_row(report.config, row):
            report.applied += 1
        else:
            report.skipped.append(line_no)
            logger.debug(f"Skipping malformed settings row {line_no}: {row!r}")

    logger.info(f"Imported {report.applied} setting(s), skipped {len(report.skipped)}")
    return report


def read_csv(path: Path) -> ImportReport:
    return parse_csv(path.read_text(encoding="utf-8-sig"))
