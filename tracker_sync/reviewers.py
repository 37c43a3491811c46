"""Reviewer aggregation for pull requests.

Merges requested reviewers and submitted reviews into one state per
reviewer, and derives the overall review disposition.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .models import PullRequestSummary, ReviewerSummary, ReviewStatusEntry, ReviewSummary

WIP_PATTERN = re.compile(r'\bwip\b', re.IGNORECASE)


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def _upsert_reviewer(reviewers: Dict[Tuple[str, str], ReviewerSummary], incoming: ReviewerSummary):
    """Merge one review signal into the reviewer map.

    A timestamped signal wins over an untimestamped entry or an older one.
    An untimestamped signal only replaces an entry that has no timestamp
    either, so a re-request never erases a recorded decision.
    """
    key = (incoming.type, incoming.login)
    existing = reviewers.get(key)

    if existing is None:
        reviewers[key] = incoming
        return

    if not incoming.submitted_at:
        if not existing.submitted_at:
            reviewers[key] = incoming
        return

    if not existing.submitted_at or \
            _parse_timestamp(incoming.submitted_at) >= _parse_timestamp(existing.submitted_at):
        reviewers[key] = ReviewerSummary(
            type=existing.type,
            login=existing.login,
            state=incoming.state,
            name=incoming.name,
            submitted_at=incoming.submitted_at,
            avatar_url=incoming.avatar_url,
        )


def aggregate_reviewers(requested_users: List[Dict], requested_teams: List[Dict],
                        reviews: List[Dict]) -> List[ReviewerSummary]:
    """Build one ReviewerSummary per user/team from GitHub API payloads.

    Args:
        requested_users: `users` of the requested_reviewers endpoint
        requested_teams: `teams` of the requested_reviewers endpoint
        reviews: Submitted reviews, in the order GitHub returns them

    Returns:
        Reviewer summaries sorted by login
    """
    reviewers: Dict[Tuple[str, str], ReviewerSummary] = {}

    for user in requested_users or []:
        _upsert_reviewer(reviewers, ReviewerSummary(
            type='USER',
            login=user['login'],
            name=user.get('name'),
            state='REVIEW_REQUESTED',
            avatar_url=user.get('avatar_url'),
        ))

    for team in requested_teams or []:
        _upsert_reviewer(reviewers, ReviewerSummary(
            type='TEAM',
            login=team.get('slug') or team['name'],
            name=team.get('name'),
            state='REVIEW_REQUESTED',
        ))

    for review in reviews or []:
        user = review.get('user') or {}
        login = user.get('login')
        if not login:
            continue

        _upsert_reviewer(reviewers, ReviewerSummary(
            type='USER',
            login=login,
            name=user.get('name'),
            state=review.get('state') or 'COMMENTED',
            submitted_at=review.get('submitted_at'),
            avatar_url=user.get('avatar_url'),
        ))

    return sorted(reviewers.values(), key=lambda reviewer: (reviewer.login.casefold(), reviewer.login))


def build_review_summary(reviewers: List[ReviewerSummary]) -> ReviewSummary:
    """Tally reviewer states and pick the overall status.

    Any change request wins, then pending requests, then approvals.
    """
    summary = ReviewSummary()

    for reviewer in reviewers:
        state = (reviewer.state or '').upper()
        if state == 'APPROVED':
            summary.approved += 1
        elif state == 'CHANGES_REQUESTED':
            summary.changes_requested += 1
        elif state == 'COMMENTED':
            summary.commented += 1
        elif state == 'DISMISSED':
            summary.dismissed += 1
        else:
            summary.pending += 1

    if summary.changes_requested:
        summary.overall_status = 'changes_requested'
    elif summary.pending:
        summary.overall_status = 'pending'
    elif summary.approved:
        summary.overall_status = 'approved'
    else:
        summary.overall_status = 'no_reviews'

    return summary


def title_includes_wip(title: Optional[str]) -> bool:
    return bool(WIP_PATTERN.search(title or ''))


def build_review_status_entries(pull_requests: List[PullRequestSummary]) -> List[ReviewStatusEntry]:
    return [
        ReviewStatusEntry(
            number=pr.number,
            title=pr.title,
            title_includes_wip=title_includes_wip(pr.title),
            draft=pr.draft,
            author=pr.author,
            reviewers={reviewer.login: reviewer.state for reviewer in pr.reviewers},
            updated_at=pr.updated_at,
            labels=list(pr.labels),
        )
        for pr in pull_requests
    ]


def filter_ready_review_entries(entries: List[ReviewStatusEntry]) -> List[ReviewStatusEntry]:
    """Drop drafts and work-in-progress titles."""
    return [entry for entry in entries if not entry.draft and not title_includes_wip(entry.title)]
