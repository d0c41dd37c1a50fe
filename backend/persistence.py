import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.database import ChartAnalysisRecord
from backend.models import AnalysisResult
from backend.storage import ObjectStorage, object_key_for

logger = logging.getLogger(__name__)


def persist_analysis(
    db: Session,
    storage: ObjectStorage,
    image: bytes,
    filename: str,
    result: AnalysisResult,
    owner_id: str,
) -> ChartAnalysisRecord:
    """
    Upload the chart image and insert one record pointing at it

    The uploaded object is not removed if the insert fails.
    """
    key = object_key_for(owner_id, filename)
    image_url = storage.upload(image, key)

    record = ChartAnalysisRecord(
        user_id=owner_id,
        image_url=image_url,
        bias=result.bias,
        confidence=result.confidence,
        reasons=list(result.reasons),
        best_move=result.best_move,
        parse_failed=result.parse_failed,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(f"Saved analysis {record.id} for user {owner_id}")
    return record


def list_analyses(db: Session, owner_id: str) -> list[ChartAnalysisRecord]:
    stmt = (
        select(ChartAnalysisRecord)
        .where(ChartAnalysisRecord.user_id == owner_id)
        .order_by(ChartAnalysisRecord.created_at.desc())
    )
    return list(db.scalars(stmt))


def get_analysis(db: Session, owner_id: str, analysis_id: str) -> Optional[ChartAnalysisRecord]:
    record = db.get(ChartAnalysisRecord, analysis_id)
    if record is None or record.user_id != owner_id:
        return None
    return record


def delete_analysis(db: Session, owner_id: str, analysis_id: str) -> bool:
    # The stored image object is left in place
    record = get_analysis(db, owner_id, analysis_id)
    if record is None:
        return False
    db.delete(record)
    db.commit()
    logger.info(f"Deleted analysis {analysis_id} for user {owner_id}")
    return True
