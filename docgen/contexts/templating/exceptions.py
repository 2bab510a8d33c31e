"""Custom exceptions for templating context with repository and template references."""

from pathlib import Path
from typing import List, Optional


class TemplateStoreError(RuntimeError):
    """
    Base class for failures while acquiring templates from a remote store.

    Attributes:
        message: Error description
        uri: Download URI that was requested
    """

    def __init__(self, message: str, uri: Optional[str] = None):
        self.message = message
        self.uri = uri

        parts = []
        if uri:
            parts.append(f"Could not get document zip from '{uri}'!")
        parts.append(message)

        super().__init__("\n".join(parts))


class TemplateStoreConfigError(TemplateStoreError):
    """
    Exception raised when a store is used without its required configuration.

    Attributes:
        missing: Names of the missing configuration keys
    """

    def __init__(self, store_name: str, missing: List[str]):
        self.missing = missing
        super().__init__(f"{store_name} is not applicable - missing config {missing}")


class BranchNotFoundError(TemplateStoreError):
    """
    Exception raised when the release branch for a version does not exist (HTTP 400).

    Attributes:
        repo: Templates repository
        branch: Expected release branch (release/v{version})
    """

    def __init__(self, uri: str, repo: str, branch: str):
        self.repo = repo
        self.branch = branch
        super().__init__(
            f"In repository '{repo}' - is there a correct release branch configured, "
            f"called '{branch}'?",
            uri=uri,
        )


class AccessDeniedError(TemplateStoreError):
    """
    Exception raised when the configured principal cannot read the repository (HTTP 401).

    Attributes:
        repo: Templates repository
        principal: Configured username, or "Anyone" when unauthenticated
    """

    def __init__(self, uri: str, repo: str, principal: str):
        self.repo = repo
        self.principal = principal
        super().__init__(f"In repository '{repo}' - does '{principal}' have access?", uri=uri)


class RepositoryNotFoundError(TemplateStoreError):
    """
    Exception raised when the repository or project does not exist (HTTP 404).

    Attributes:
        repo: Templates repository
        project: Project expected to contain the repository
    """

    def __init__(self, uri: str, repo: str, project: str):
        self.repo = repo
        self.project = project
        super().__init__(f"Does repository '{repo}' in project: '{project}' exist?", uri=uri)


class TemplatePartNotFoundError(FileNotFoundError):
    """
    Exception raised when one of the required partials (document/header/footer) is missing.

    Attributes:
        part: Partial name ("document", "header" or "footer")
        path: Path where the partial was expected
    """

    def __init__(self, part: str, path: Path):
        self.part = part
        self.path = path
        super().__init__(f"could not find required template part '{part}' at '{path}'")


class TemplateRenderError(Exception):
    """
    Exception raised when template rendering fails.

    Attributes:
        message: Error description
        template_path: Path to the template file
        original_error: The original Handlebars error
    """

    def __init__(
        self,
        message: str,
        template_path: Optional[Path] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.template_path = template_path
        self.original_error = original_error

        # Build enhanced error message
        parts = [message]

        if template_path:
            parts.append(f"\nTemplate: {template_path}")

        if original_error:
            parts.append(f"\nOriginal error: {str(original_error)}")

        super().__init__("\n".join(parts))
