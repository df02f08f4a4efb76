"""
Blacklist - URLs users reported as broken, per discipline.

Reported URLs are never offered again for the discipline they were reported in.
"""

from typing import Iterable, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.engines.validation.url_rules import normalize_url
from learnpath.logging_config import get_logger
from learnpath.models.reported_link import ReportedLink

logger = get_logger(__name__)

DEFAULT_REPORT_REASON = "Broken link"


def is_blacklisted(url: str, blacklist: Iterable[str]) -> bool:
    """Compare on normalised URLs so trailing slashes and www. do not matter."""
    if not url:
        return False
    key = normalize_url(url)
    return any(key == normalize_url(b) for b in blacklist if b)


class BlacklistService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, url: str) -> Optional[ReportedLink]:
        result = await self.session.execute(select(ReportedLink).where(ReportedLink.url == url))
        return result.scalar_one_or_none()

    async def report(
        self,
        url: str,
        resource_type: str,
        step_title: Optional[str] = None,
        discipline: Optional[str] = None,
        reason: Optional[str] = None,
        reported_by: Optional[str] = None,
    ) -> ReportedLink:
        """Record a report: insert with count 1, or bump the count of an existing row."""
        row = await self.get(url)
        if row:
            row.report_count += 1
            logger.info("Incremented report count", extra={"url": url, "report_count": row.report_count})
        else:
            row = ReportedLink(
                url=url,
                resource_type=resource_type,
                step_title=step_title,
                discipline=discipline,
                reported_by=reported_by,
                report_reason=reason or DEFAULT_REPORT_REASON,
                report_count=1,
            )
            self.session.add(row)
            logger.info("Added reported link", extra={"url": url, "discipline": discipline})
        await self.session.flush()
        await self.session.refresh(row)
        return row

    async def list_for_discipline(self, discipline: str) -> List[ReportedLink]:
        q = (
            select(ReportedLink)
            .where(ReportedLink.discipline == discipline)
            .order_by(ReportedLink.report_count.desc(), ReportedLink.url)
        )
        result = await self.session.execute(q)
        return list(result.scalars().all())

    async def urls_for_discipline(self, discipline: str) -> Set[str]:
        result = await self.session.execute(
            select(ReportedLink.url).where(ReportedLink.discipline == discipline)
        )
        return set(result.scalars().all())
