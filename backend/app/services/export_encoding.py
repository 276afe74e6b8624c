from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from openpyxl import Workbook

from app.services.export_dataset import METRIC_CATALOGUE

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def encode_csv(dataset: Sequence[dict[str, Any]], metrics: Sequence[str]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(
        ["Timestamp (epoch)", "ISO 8601", *(METRIC_CATALOGUE[key].label for key in metrics)]
    )
    for row in dataset:
        writer.writerow([row["timestamp"], row["iso8601"], *(row.get(key) for key in metrics)])
    return buffer.getvalue().encode("utf-8")


def encode_xlsx(
    dataset: Sequence[dict[str, Any]],
    metrics: Sequence[str],
    *,
    include_metadata: bool,
    device_id: str,
    range_from: int,
    range_to: int,
    sampling: str,
) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Readings"
    sheet.append(["Timestamp", "ISO Time", *(METRIC_CATALOGUE[key].label for key in metrics)])
    for row in dataset:
        sheet.append([row["timestamp"], row["iso8601"], *(row.get(key) for key in metrics)])

    if include_metadata:
        meta = workbook.create_sheet("Metadata")
        for item in (
            ("Device ID", device_id),
            ("Range", f"{range_from} - {range_to}"),
            ("Metrics", ", ".join(metrics)),
            ("Sampling", sampling),
            ("Exported At", datetime.now(timezone.utc).isoformat()),
        ):
            meta.append(list(item))

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
