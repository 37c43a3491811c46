"""Field whitelists for analytics-oriented output, keyed by collection."""

ISSUE_FIELDS = (
    'identifier',
    'title',
    'description',
    'priority',
    'priorityLabel',
    'branchName',
    'url',
    'dueDate',
    'estimate',
    'slaBreachesAt',
    'slaHighRiskAt',
    'slaMediumRiskAt',
    'slaStartedAt',
    'snoozedUntilAt',
    'trashed',
    'createdAt',
    'updatedAt',
    'completedAt',
    'archivedAt',
    'autoArchivedAt',
    'autoClosedAt',
    'canceledAt',
    'startedAt',
    'startedTriageAt',
    'triagedAt',
    'addedToCycleAt',
)

PROJECT_FIELDS = (
    'id',
    'name',
    'state',
    'status',
    'description',
    'targetDate',
    'startDate',
    'endDate',
    'createdAt',
    'updatedAt',
    'health',
    'color',
    'progress',
    'url',
    'issueCount',
)

TEAM_FIELDS = (
    'name',
    'key',
    'description',
    'cycleDuration',
    'triageEnabled',
    'color',
    'timezone',
    'issueEstimationType',
    'createdAt',
    'updatedAt',
)

USER_FIELDS = (
    'name',
    'displayName',
    'email',
    'active',
    'admin',
    'avatarUrl',
    'statusEmoji',
    'statusLabel',
    'disableReason',
    'createdAt',
    'updatedAt',
)

LABEL_FIELDS = ('name', 'description', 'color', 'archivedAt', 'createdAt', 'updatedAt')

CYCLE_FIELDS = (
    'name',
    'number',
    'status',
    'description',
    'startsAt',
    'endsAt',
    'completedAt',
    'progress',
    'createdAt',
    'updatedAt',
)

PULL_REQUEST_FIELDS = (
    'number',
    'title',
    'state',
    'draft',
    'author',
    'createdAt',
    'updatedAt',
    'mergedAt',
    'headRef',
    'baseRef',
    'url',
    'labels',
    'reviewSummary',
    'reviewers',
)

REVIEW_STATUS_FIELDS = ('number', 'title', 'titleIncludesWip', 'draft', 'author', 'updatedAt', 'labels', 'reviewers')

COMMIT_FIELDS = ('owner', 'repo', 'sha', 'message', 'authorLogin', 'committedAt', 'parents')

FIELD_WHITELIST = {
    'issues': ISSUE_FIELDS,
    'issue': ISSUE_FIELDS,
    'projects': PROJECT_FIELDS,
    'teams': TEAM_FIELDS,
    'users': USER_FIELDS,
    'labels': LABEL_FIELDS,
    'cycles': CYCLE_FIELDS,
    'pullRequests': PULL_REQUEST_FIELDS,
    'reviewStatus': REVIEW_STATUS_FIELDS,
    'commits': COMMIT_FIELDS,
}
