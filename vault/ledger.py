"""Progress ledger arithmetic: per-item grade stats, due items, session aggregates.

The review interval is a fixed four-bucket lookup on recall accuracy, not an
adaptive scheduler. Comparisons are strict: accuracy 0.8 lands in the 3-day
bucket, not the 7-day one.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from vault.models import GradeRecord, Item, SessionStat, Grade, parse_timestamp, to_iso, utc_now

# (accuracy strictly above, interval days), checked in order.
INTERVAL_BUCKETS = (
    (0.8, 7),
    (0.6, 3),
    (0.4, 2),
)
DEFAULT_INTERVAL_DAYS = 1


def review_interval_days(accuracy: float) -> int:
    for threshold, days in INTERVAL_BUCKETS:
        if accuracy > threshold:
            return days
    return DEFAULT_INTERVAL_DAYS


def accuracy_of(again: int, good: int, easy: int) -> float:
    total = again + good + easy
    if total == 0:
        return 0.0
    return (good + easy) / total


def _empty_stats(item_id: str) -> Dict:
    return {
        'itemId': item_id,
        'again': 0,
        'good': 0,
        'easy': 0,
        'total': 0,
        'accuracy': 0.0,
        'lastSeen': None,
    }


def progress_by_item(records: Iterable[GradeRecord]) -> Dict[str, Dict]:
    """
    Fold grade records into per-item stats.

    Returns:
        {item_id: {itemId, again, good, easy, total, accuracy, lastSeen}}
        lastSeen is the latest record timestamp as an ISO string.
    """
    stats: Dict[str, Dict] = {}
    last_seen: Dict[str, datetime] = {}
    for rec in records:
        s = stats.setdefault(rec.item_id, _empty_stats(rec.item_id))
        if rec.grade in (Grade.AGAIN.value, Grade.GOOD.value, Grade.EASY.value):
            s[rec.grade] += 1
            s['total'] += 1
        ts = parse_timestamp(rec.timestamp)
        if rec.item_id not in last_seen or ts > last_seen[rec.item_id]:
            last_seen[rec.item_id] = ts

    for item_id, s in stats.items():
        s['accuracy'] = round(accuracy_of(s['again'], s['good'], s['easy']), 4)
        s['lastSeen'] = to_iso(last_seen.get(item_id))
    return stats


def stats_for_item(records: Iterable[GradeRecord], item_id: str) -> Dict:
    """Counts of again/good/easy and last-seen time for one item (zeros if never graded)."""
    return progress_by_item(r for r in records if r.item_id == item_id).get(
        item_id, _empty_stats(item_id),
    )


def due_status(stats: Optional[Dict], now: datetime) -> Dict:
    """
    Due decision for one item's stats.

    Returns:
        {due: bool, intervalDays: int|None, dueAt: iso|None}
        Never-graded items are due immediately with no interval.
    """
    if not stats or not stats.get('total') or not stats.get('lastSeen'):
        return {'due': True, 'intervalDays': None, 'dueAt': None}
    accuracy = accuracy_of(stats['again'], stats['good'], stats['easy'])
    interval = review_interval_days(accuracy)
    due_at = parse_timestamp(stats['lastSeen']) + timedelta(days=interval)
    return {
        'due': now >= due_at,
        'intervalDays': interval,
        'dueAt': to_iso(due_at),
    }


def due_items(
    items: Sequence[Item],
    records: Iterable[GradeRecord],
    now: Optional[datetime] = None,
) -> List[Item]:
    """Items whose review interval has elapsed since last graded, or that were never graded."""
    now = parse_timestamp(now) if now is not None else utc_now()
    stats = progress_by_item(records)
    return [item for item in items if due_status(stats.get(item.id), now)['due']]


def session_stats(sessions: Sequence[SessionStat]) -> Dict:
    """
    Aggregate session records.

    averageAccuracy is the mean of each session's own accuracy; totalAccuracy
    is computed from the summed grade counts. They differ whenever sessions
    have different sizes, and both are reported.
    """
    total_again = sum(s.again for s in sessions)
    total_good = sum(s.good for s in sessions)
    total_easy = sum(s.easy for s in sessions)
    average = sum(s.accuracy for s in sessions) / len(sessions) if sessions else 0.0
    return {
        'totalSessions': len(sessions),
        'totalCards': sum(s.total_cards for s in sessions),
        'totalAgain': total_again,
        'totalGood': total_good,
        'totalEasy': total_easy,
        'totalCoins': sum(s.coins_earned for s in sessions),
        'totalDurationSeconds': round(sum(s.duration_seconds for s in sessions), 2),
        'averageAccuracy': round(average, 4),
        'totalAccuracy': round(accuracy_of(total_again, total_good, total_easy), 4),
    }
