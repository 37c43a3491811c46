"""Per-invocation service container.

Built once from Settings and handed to every command, so services and
caches are never module-level globals.
"""

from typing import Optional

from .config import Settings
from .errors import ConfigurationError
from .figma import FigmaService
from .github import GitHubService
from .linear import LinearService
from .storage import SnapshotStore
from .sync import SyncOrchestrator


class ServiceContext:
    """Lazily builds the services the current command needs."""

    def __init__(self, settings: Settings, linear: LinearService = None, github: GitHubService = None,
                 figma: FigmaService = None, store: SnapshotStore = None):
        self.settings = settings
        self._linear = linear
        self._github = github
        self._figma = figma
        self._store = store
        self._orchestrator: Optional[SyncOrchestrator] = None

    @property
    def linear(self) -> LinearService:
        if self._linear is None:
            if not self.settings.linear_api_key:
                raise ConfigurationError("Linear is not configured. Set LINEAR_API_KEY.")
            self._linear = LinearService(self.settings.linear_api_key, self.settings.linear_workspace_id)
        return self._linear

    @property
    def github(self) -> GitHubService:
        if self._github is None:
            if not self.settings.github_token:
                raise ConfigurationError("GitHub is not configured. Set GITHUB_TOKEN.")
            self._github = GitHubService(self.settings.github_token, self.settings.github_repository)
        return self._github

    @property
    def figma(self) -> FigmaService:
        if self._figma is None:
            if not self.settings.figma_access_token:
                raise ConfigurationError("Figma is not configured. Set FIGMA_ACCESS_TOKEN.")
            self._figma = FigmaService(self.settings.figma_access_token, self.settings.figma_api_base_url)
        return self._figma

    @property
    def store(self) -> SnapshotStore:
        if self._store is None:
            self._store = SnapshotStore(self.settings.storage_dir)
        return self._store

    @property
    def orchestrator(self) -> SyncOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = SyncOrchestrator(self.store)
        return self._orchestrator
