"""Errors raised while resolving an extension against its Git repository."""
from __future__ import annotations


class GitAnalysisError(Exception):
    """Base class; carries the key of the extension being resolved."""

    def __init__(self, extension_key: str, message: str):
        super().__init__(message)
        self.extension_key = extension_key


class NoRepositoryUrl(GitAnalysisError):
    """Neither the extension nor its metadata names a repository."""

    def __init__(self, extension_key: str):
        super().__init__(extension_key, f"No repository URL found for extension: {extension_key}")


class UnsupportedRepository(GitAnalysisError):
    """No provider can serve the repository URL."""

    def __init__(self, extension_key: str, repository_url: str):
        super().__init__(
            extension_key,
            f"No suitable Git provider for extension {extension_key}: {repository_url}",
        )
        self.repository_url = repository_url


class AnalysisFailed(GitAnalysisError):
    """A provider call failed; ``cause`` is the original exception."""

    def __init__(self, extension_key: str, cause: BaseException):
        super().__init__(extension_key, f"Git analysis failed for extension {extension_key}: {cause}")
        self.cause = cause
