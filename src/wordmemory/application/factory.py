"""
Service Factory
Centralizes wiring of repositories, backups and sync adapters from config.
"""

from wordmemory.application.config import AppConfig
from wordmemory.application.scheduler import ReviewScheduler
from wordmemory.application.word_service import WordService
from wordmemory.domain.errors import GitHubSyncError
from wordmemory.infrastructure.backup import BackupManager
from wordmemory.infrastructure.github_sync import GitHubSync
from wordmemory.infrastructure.json_store import JsonWordRepository


def get_backup_manager(config: AppConfig) -> BackupManager:
    return BackupManager(config.backup_dir, max_auto_backups=config.max_auto_backups)


def get_word_service(config: AppConfig) -> WordService:
    """
    Returns a WordService backed by the JSON file at config.data_path.
    """
    return WordService(
        JsonWordRepository(config.data_path),
        scheduler=ReviewScheduler(config.retrievability_basis),
        backup_manager=get_backup_manager(config) if config.auto_backup else None,
    )


def get_github_sync(config: AppConfig) -> GitHubSync:
    if not config.github_owner or not config.github_repo:
        raise GitHubSyncError(
            "GitHub sync needs github_owner and github_repo "
            "(WORDMEMORY_GITHUB_OWNER / WORDMEMORY_GITHUB_REPO)"
        )
    return GitHubSync(
        owner=config.github_owner,
        repo=config.github_repo,
        path=config.github_path,
        token=config.github_token,
        api_url=config.github_api_url,
    )
