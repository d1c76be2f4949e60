"""
Visit log storage.

Writes one Visit row per successful redirect and builds the per-URL,
per-IP summary the list endpoint returns.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from redirector_app.models.visit import Visit
from redirector_app.schemas.url import IpStats, VisitDetail


# url_id -> ip -> summary
GroupedStats = Dict[int, Dict[str, IpStats]]


def group_visits(visits: Iterable[Visit]) -> GroupedStats:
    """
    Group visits by (url_id, ip).

    Each group's result list keeps the order of the input, so callers must
    pass visits in write order.
    """
    grouped: GroupedStats = {}
    for visit in visits:
        per_ip = grouped.setdefault(visit.url_id, {})
        stats = per_ip.get(visit.ip)
        if stats is None:
            stats = per_ip[visit.ip] = IpStats(count=0, result=[])
        stats.count += 1
        stats.result.append(
            VisitDetail(
                agent=visit.agent,
                referer=visit.referer,
                accessed_at=visit.accessed_at,
            )
        )
    return grouped


class VisitLog:
    """Append-only access log backed by the visits table"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        url_id: int,
        ip: str,
        agent: Optional[str] = None,
        referer: Optional[str] = None,
        accessed_at: Optional[datetime] = None,
    ) -> Visit:
        """
        Stage a visit row in the current transaction.

        The caller commits, so the row lands together with the access
        counter increment.
        """
        visit = Visit(
            url_id=url_id,
            ip=ip,
            agent=agent,
            referer=referer,
            accessed_at=accessed_at or datetime.now(timezone.utc),
        )
        self.db.add(visit)
        return visit

    def grouped_by_url_and_ip(self) -> GroupedStats:
        """Summarise every visit, oldest first within each group"""
        visits = self.db.query(Visit).order_by(Visit.id).all()
        return group_visits(visits)
