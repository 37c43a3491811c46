"""Environment-based settings.

Values come from the process environment, optionally seeded from a `.env`
file by the entry point (python-dotenv).
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .models import RepositoryConfig

DEFAULT_STORAGE_DIRNAME = 'storage'


def resolve_repository_from_env(environ: Mapping[str, str]) -> Optional[RepositoryConfig]:
    """Read GITHUB_OWNER/GITHUB_REPO, or GITHUB_REPOSITORY as owner/repo."""
    owner = environ.get('GITHUB_OWNER')
    repo = environ.get('GITHUB_REPO')
    if owner and repo:
        return RepositoryConfig(owner=owner, repo=repo)

    combined = environ.get('GITHUB_REPOSITORY', '')
    if '/' in combined:
        combined_owner, combined_repo = combined.split('/', 1)
        if combined_owner and combined_repo:
            return RepositoryConfig(owner=combined_owner, repo=combined_repo)

    return None


@dataclass
class Settings:
    """Credentials and paths for one invocation."""
    storage_dir: str
    linear_api_key: Optional[str] = None
    linear_workspace_id: Optional[str] = None
    github_token: Optional[str] = None
    github_repository: Optional[RepositoryConfig] = None
    figma_access_token: Optional[str] = None
    figma_api_base_url: Optional[str] = None
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'Settings':
        environ = os.environ if environ is None else environ

        storage_dir = environ.get('LINEAR_STORAGE_DIR') or os.path.join(os.getcwd(), DEFAULT_STORAGE_DIRNAME)

        return cls(
            storage_dir=storage_dir,
            linear_api_key=environ.get('LINEAR_API_KEY') or None,
            linear_workspace_id=environ.get('LINEAR_WORKSPACE_ID') or None,
            github_token=environ.get('GITHUB_TOKEN') or None,
            github_repository=resolve_repository_from_env(environ),
            figma_access_token=environ.get('FIGMA_ACCESS_TOKEN') or None,
            figma_api_base_url=environ.get('FIGMA_API_BASE_URL') or None,
            log_level=environ.get('LOG_LEVEL', 'INFO').upper(),
        )

    def warn_incomplete(self):
        """Log settings that are usable but only partially configured."""
        if self.linear_api_key and not self.linear_workspace_id:
            logging.warning("LINEAR_WORKSPACE_ID is not set; the workspace check is skipped.")

    @property
    def workspace_label(self) -> str:
        return self.linear_workspace_id or '(not set)'
