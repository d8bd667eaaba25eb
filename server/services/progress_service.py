"""Progress ledger service -- all return JSON-serializable dicts."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session as DBSession

from server.db.models import GradeRow, StudySessionRow
from server.services import item_service
from vault import ledger
from vault.errors import ValidationError
from vault.models import Grade, GradeRecord, SessionStat, parse_timestamp, to_iso, utc_now

logger = logging.getLogger("vault.progress")


def _to_record(row: GradeRow) -> GradeRecord:
    return GradeRecord(item_id=row.item_id, grade=row.grade, timestamp=to_iso(row.timestamp))


def _to_stat(row: StudySessionRow) -> SessionStat:
    return SessionStat(
        mode=row.mode,
        total_cards=row.total_cards,
        again=row.again,
        good=row.good,
        easy=row.easy,
        accuracy=row.accuracy,
        duration_seconds=row.duration_seconds,
        coins_earned=row.coins_earned,
        timestamp=to_iso(row.timestamp),
    )


def record_grade(
    db: DBSession,
    item_id: str,
    grade: str,
    timestamp: Optional[Any] = None,
) -> GradeRecord:
    """Append a grade. The item is not looked up; grades for unknown ids are kept."""
    try:
        grade = Grade(grade).value
    except ValueError:
        raise ValidationError(f"Invalid grade: {grade}")
    ts = parse_timestamp(timestamp) if timestamp is not None else utc_now()
    row = GradeRow(item_id=item_id, grade=grade, timestamp=ts)
    db.add(row)
    db.flush()
    logger.info("Recorded grade %s for item %s", grade, item_id)
    return _to_record(row)


def list_grades(db: DBSession) -> List[GradeRecord]:
    return [_to_record(r) for r in db.query(GradeRow).order_by(GradeRow.id).all()]


def item_progress(db: DBSession, item_id: str) -> Dict:
    rows = db.query(GradeRow).filter(GradeRow.item_id == item_id).all()
    return ledger.stats_for_item([_to_record(r) for r in rows], item_id)


def get_due_items(db: DBSession, now: Optional[datetime] = None) -> Dict:
    """
    Return due items with their interval info.

    Returns:
        {dueCount, items: [item dict + {intervalDays, dueAt}]}
    """
    now = parse_timestamp(now) if now is not None else utc_now()
    items = item_service.list_all(db)
    stats = ledger.progress_by_item(list_grades(db))
    due = []
    for item in items:
        status = ledger.due_status(stats.get(item.id), now)
        if status['due']:
            due.append({**item.to_dict(), 'intervalDays': status['intervalDays'], 'dueAt': status['dueAt']})
    return {'dueCount': len(due), 'items': due}


def record_session(db: DBSession, stat: SessionStat, user_id: Optional[str] = None) -> SessionStat:
    row = StudySessionRow(
        user_id=user_id,
        mode=stat.mode,
        total_cards=stat.total_cards,
        again=stat.again,
        good=stat.good,
        easy=stat.easy,
        accuracy=stat.accuracy,
        duration_seconds=stat.duration_seconds,
        coins_earned=stat.coins_earned,
        timestamp=parse_timestamp(stat.timestamp) if stat.timestamp else utc_now(),
    )
    db.add(row)
    db.flush()
    logger.info("Recorded %s session: %d cards, accuracy %.2f", stat.mode, stat.total_cards, stat.accuracy)
    return _to_stat(row)


def list_sessions(db: DBSession) -> List[SessionStat]:
    return [_to_stat(r) for r in db.query(StudySessionRow).order_by(StudySessionRow.id).all()]


def get_session_stats(db: DBSession) -> Dict:
    return ledger.session_stats(list_sessions(db))


def reset_progress(db: DBSession) -> Dict:
    """Clear the whole ledger: every grade and every session record."""
    grades = db.query(GradeRow).delete()
    sessions = db.query(StudySessionRow).delete()
    db.flush()
    logger.info("Reset progress: %d grades, %d sessions removed", grades, sessions)
    return {'gradesRemoved': grades, 'sessionsRemoved': sessions}
