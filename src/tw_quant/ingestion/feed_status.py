"""Known feed outages.

When a feed returns nothing for a date covered by a registered issue, the
task logs the issue description at info level instead of warning about
missing data.
"""

import enum
from dataclasses import dataclass, field
from typing import Any

from tw_quant.infrastructure.observability import get_ingestion_logger

logger = get_ingestion_logger("feed-status")


class IssueStatus(str, enum.Enum):
    ONGOING = "ongoing"
    MONITORING = "monitoring"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class FeedIssue:
    """An outage affecting some feed datasets over a date range."""

    start_date: str
    description: str
    feeds: tuple[str, ...]  # "<source>:<dataset>"
    end_date: str | None = None  # None: single day
    status: IssueStatus = IssueStatus.RESOLVED

    def covers(self, date: str, feed: str) -> bool:
        if feed not in self.feeds:
            return False
        if self.end_date is None:
            return date == self.start_date
        return self.start_date <= date <= self.end_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "feeds": list(self.feeds),
            "description": self.description,
            "status": self.status.value,
        }


DEFAULT_ISSUES = (
    FeedIssue(
        start_date="2025-10-24",
        end_date="2025-10-26",
        feeds=("twse:inst_investors_trades", "twse:market_trades"),
        description="TWSE index and institutional investor datasets temporarily empty",
        status=IssueStatus.RESOLVED,
    ),
)


def feed_id(source: str, dataset: str) -> str:
    return f"{source}:{dataset}"


@dataclass
class FeedStatusRegistry:
    """Registry of known feed issues."""

    issues: list[FeedIssue] = field(default_factory=lambda: list(DEFAULT_ISSUES))

    def find_issue(self, date: str, feed: str) -> FeedIssue | None:
        return next((issue for issue in self.issues if issue.covers(date, feed)), None)

    def has_known_issue(self, date: str, feed: str) -> bool:
        return self.find_issue(date, feed) is not None

    def add_known_issue(self, issue: FeedIssue) -> None:
        self.issues.append(issue)
        logger.info("known_issue_added", **issue.to_dict())

    def current_issues(self, today: str) -> list[FeedIssue]:
        return [
            issue
            for issue in self.issues
            if issue.status is IssueStatus.ONGOING
            or (issue.status is IssueStatus.MONITORING and issue.start_date <= today <= (issue.end_date or issue.start_date))
        ]

    def log_result(self, date: str, feed: str, operation: str, success: bool) -> None:
        """Log a task's fetch result with the right severity."""
        if success:
            logger.info("feed_data_updated", date=date, feed=feed, operation=operation)
        elif issue := self.find_issue(date, feed):
            logger.info(
                "feed_known_issue",
                date=date,
                feed=feed,
                operation=operation,
                issue=issue.description,
            )
        else:
            logger.warning("feed_no_data", date=date, feed=feed, operation=operation)
