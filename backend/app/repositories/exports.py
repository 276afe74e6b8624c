import time
import uuid

from sqlalchemy.orm import Session

from app.db.models import ExportRecord


def create_export_record(
    db: Session,
    *,
    user_id: str,
    export_format: str,
    metrics: list[str],
    range_from: int,
    range_to: int,
) -> ExportRecord:
    record = ExportRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        format=export_format,
        metrics=list(metrics),
        range_from=range_from,
        range_to=range_to,
        created_at=int(time.time()),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
