"""
Template stores

A template store downloads the zip archive of the templates repository for a
version and extracts it so that the target directory holds a templates/ subtree.

Stores:
    BitbucketTemplatesStore: Authenticated, project-scoped store. Versions map to
                             release branches (release/v{version}).
    GithubTemplatesStore: Public store. Versions map to tags (v{version}); supports
                          an outbound HTTP proxy.

Selection is a fixed priority order: the Bitbucket store when its configuration is
complete, the GitHub store otherwise (see select_templates_store).
"""

import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlencode

import requests

from docgen.contexts.templating.archive import extract_zip_archive
from docgen.contexts.templating.exceptions import (
    AccessDeniedError,
    BranchNotFoundError,
    RepositoryNotFoundError,
    TemplateStoreConfigError,
)
from docgen.contexts.templating.logger import (
    _log_error,
    _log_info,
    log_fetch_result,
    log_fetch_start,
)
from docgen.utils.config import DocGenConfig

ZIP_CONTENT_TYPE = "application/octet-stream"
DEFAULT_GITHUB_HOST = "https://www.github.com"
DEFAULT_PROXY_PORT = 80

# Archives above this size are spooled to disk while downloading
SPOOL_MAX_SIZE = 16 * 1024 * 1024
CHUNK_SIZE = 64 * 1024


class TemplatesStore(ABC):
    """Source of versioned template archives."""

    @abstractmethod
    def get_templates_for_version(self, version: str, target_dir: Path) -> Path:
        """Download templates of a version and extract them into target_dir."""
        pass

    @abstractmethod
    def get_zip_archive_download_uri(self, version: str) -> str:
        """URI of the templates archive for a version."""
        pass

    @abstractmethod
    def is_applicable_to_system_config(self) -> bool:
        """Whether all store-specific configuration is present."""
        pass


def create_session() -> requests.Session:
    """
    HTTP session for template downloads.

    Proxies come from DocGenConfig only: the session ignores HTTP_PROXY and the
    other proxy environment variables, which requests would otherwise apply to
    every store.
    """
    session = requests.Session()
    session.trust_env = False
    return session


def _spool_response(response: requests.Response) -> tempfile.SpooledTemporaryFile:
    """Copy a streamed response body into a seekable spooled file."""
    spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
        spool.write(chunk)
    spool.seek(0)
    return spool


class BitbucketTemplatesStore(TemplatesStore):
    """
    Templates store backed by a Bitbucket Server repository.

    The archive of branch release/v{version} is downloaded through the Bitbucket
    REST API. Basic authentication is used when both username and password are
    configured.
    """

    def __init__(self, config: DocGenConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or create_session()

    @staticmethod
    def release_branch(version: str) -> str:
        return f"release/v{version}"

    def _archive_url(self) -> str:
        base_url = (self.config.bitbucket_url or "").rstrip("/")
        return (
            f"{base_url}/rest/api/latest/projects/{self.config.bitbucket_project}"
            f"/repos/{self.config.bitbucket_repo}/archive"
        )

    def _archive_params(self, version: str) -> Dict[str, str]:
        return {"at": f"refs/heads/{self.release_branch(version)}", "format": "zip"}

    def get_zip_archive_download_uri(self, version: str) -> str:
        return f"{self._archive_url()}?{urlencode(self._archive_params(version), safe='/')}"

    def missing_config(self) -> List[str]:
        """Names of required environment settings that are not configured."""
        required = {
            "BITBUCKET_URL": self.config.bitbucket_url,
            "BITBUCKET_DOCUMENT_TEMPLATES_PROJECT": self.config.bitbucket_project,
            "BITBUCKET_DOCUMENT_TEMPLATES_REPO": self.config.bitbucket_repo,
        }
        return [name for name, value in required.items() if not value]

    def is_applicable_to_system_config(self) -> bool:
        missing = self.missing_config()
        if missing:
            _log_error(f"Bitbucket adapter not applicable - missing config {missing}")
            return False
        return True

    def _auth(self) -> Optional[tuple]:
        if self.config.bitbucket_username and self.config.bitbucket_password:
            return (self.config.bitbucket_username, self.config.bitbucket_password)
        return None

    def _raise_for_status(self, response: requests.Response, version: str, uri: str) -> None:
        """Translate HTTP failures into actionable errors."""
        status = response.status_code
        repo = self.config.bitbucket_repo
        if status == 400:
            raise BranchNotFoundError(uri, repo, self.release_branch(version))
        if status == 401:
            raise AccessDeniedError(uri, repo, self.config.bitbucket_username or "Anyone")
        if status == 404:
            raise RepositoryNotFoundError(uri, repo, self.config.bitbucket_project)

        response.raise_for_status()
        # Unfollowed redirects are failures too
        raise requests.HTTPError(
            f"{status} Unexpected status for url: {response.url}", response=response
        )

    def get_templates_for_version(self, version: str, target_dir: Path) -> Path:
        """
        Download templates of a version and extract them into target_dir.

        Args:
            version: Templates version (release branch release/v{version})
            target_dir: Directory receiving the templates/ subtree

        Returns:
            target_dir

        Raises:
            TemplateStoreConfigError: If URL, project or repository is not configured
            BranchNotFoundError: HTTP 400
            AccessDeniedError: HTTP 401
            RepositoryNotFoundError: HTTP 404
            requests.RequestException: Any other transport failure, unchanged
        """
        missing = self.missing_config()
        if missing:
            raise TemplateStoreConfigError("Bitbucket adapter", missing)

        uri = self.get_zip_archive_download_uri(version)
        log_fetch_start(version, uri, target_dir)
        start_time = time.time()

        with self.session.get(
            self._archive_url(),
            params=self._archive_params(version),
            headers={"Accept": ZIP_CONTENT_TYPE},
            auth=self._auth(),
            timeout=self.config.http_timeout,
            stream=True,
        ) as response:
            if response.status_code >= 300:
                self._raise_for_status(response, version, uri)

            with _spool_response(response) as archive:
                extract_zip_archive(archive, target_dir)

        log_fetch_result(version, target_dir, time.time() - start_time)
        return target_dir


class GithubTemplatesStore(TemplatesStore):
    """
    Templates store backed by the public GitHub archive of the templates repository.

    The archive of tag v{version} contains a single top-level directory
    "{repo}-{version}" which is stripped during extraction.
    """

    def __init__(self, config: DocGenConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or create_session()

    def get_zip_archive_download_uri(self, version: str) -> str:
        host = (self.config.github_host or DEFAULT_GITHUB_HOST).rstrip("/")
        return f"{host}/{self.config.github_org}/{self.config.github_repo}/archive/v{version}.zip"

    def archive_root_dir(self, version: str) -> str:
        return f"{self.config.github_repo}-{version}"

    def create_proxies(self) -> Optional[Dict[str, str]]:
        """
        Parse the configured proxy (host[:port], port defaults to 80).

        No proxy is used when a custom GitHub host is configured.

        Returns:
            Proxy mapping for requests, or None
        """
        proxy_spec = (self.config.http_proxy or "").strip().replace("http://", "")
        if not proxy_spec or self.config.github_host:
            _log_info(f"Proxy setup: {proxy_spec or 'not found'}")
            return None

        host, _, port = proxy_spec.rstrip("/").partition(":")
        proxy_url = f"http://{host}:{int(port) if port else DEFAULT_PROXY_PORT}"
        _log_info(f"Proxy setup: {proxy_url}")
        return {"http": proxy_url, "https": proxy_url}

    def is_applicable_to_system_config(self) -> bool:
        return True

    def get_templates_for_version(self, version: str, target_dir: Path) -> Path:
        """
        Download templates of a version and extract them into target_dir.

        Transport failures are propagated unchanged.
        """
        uri = self.get_zip_archive_download_uri(version)
        log_fetch_start(version, uri, target_dir)
        start_time = time.time()

        with self.session.get(
            uri,
            headers={"Accept": ZIP_CONTENT_TYPE},
            proxies=self.create_proxies(),
            timeout=self.config.http_timeout,
            stream=True,
        ) as response:
            response.raise_for_status()

            with _spool_response(response) as archive:
                extract_zip_archive(archive, target_dir, self.archive_root_dir(version))

        log_fetch_result(version, target_dir, time.time() - start_time)
        return target_dir


def select_templates_store(
    config: DocGenConfig, session: Optional[requests.Session] = None
) -> TemplatesStore:
    """
    Pick the templates store for the current configuration.

    Bitbucket takes priority; GitHub is used when the Bitbucket configuration
    is incomplete.
    """
    store: TemplatesStore = BitbucketTemplatesStore(config, session=session)
    if not store.is_applicable_to_system_config():
        store = GithubTemplatesStore(config, session=session)

    _log_info(f"Using {type(store).__name__}")
    return store
