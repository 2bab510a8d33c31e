"""
Service configuration.

Configuration is resolved once at process start and passed explicitly to the
template stores, the template cache, the rendering pipeline and the service.

Precedence (lowest to highest):
    1. DocGenConfig defaults
    2. YAML config file (DOCGEN_CONFIG_FILE or explicit path), loaded with OmegaConf
    3. Environment variables (after loading .env)

Usage:
    from docgen.utils.config import load_config

    config = load_config()
    print(config.cache_base_path)
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import load_dotenv
from omegaconf import OmegaConf

# Environment variable → DocGenConfig field
ENV_KEYS: Dict[str, str] = {
    "BITBUCKET_URL": "bitbucket_url",
    "BITBUCKET_DOCUMENT_TEMPLATES_PROJECT": "bitbucket_project",
    "BITBUCKET_DOCUMENT_TEMPLATES_REPO": "bitbucket_repo",
    "BITBUCKET_USERNAME": "bitbucket_username",
    "BITBUCKET_PASSWORD": "bitbucket_password",
    "GITHUB_HOST": "github_host",
    "GITHUB_DOCUMENT_TEMPLATES_ORG": "github_org",
    "GITHUB_DOCUMENT_TEMPLATES_REPO": "github_repo",
    "HTTP_PROXY": "http_proxy",
    "DOCGEN_CACHE_BASE_PATH": "cache_base_path",
    "DOCGEN_CACHE_TTL_HOURS": "cache_ttl_hours",
    "DOCGEN_CONNECT_TIMEOUT": "connect_timeout",
    "DOCGEN_READ_TIMEOUT": "read_timeout",
    "WKHTMLTOPDF_BINARY": "converter_binary",
    "DOCGEN_CONVERTER_TIMEOUT": "converter_timeout",
    "DOCGEN_LOG_LEVEL": "log_level",
    "DOCGEN_LOG_DIR": "log_dir",
}

CONFIG_FILE_ENV = "DOCGEN_CONFIG_FILE"


class ConfigurationError(ValueError):
    """Raised when configuration values are missing or invalid."""

    pass


@dataclass
class DocGenConfig:
    """
    Resolved service configuration.

    Attributes:
        bitbucket_url: Base URL of the Bitbucket server holding the templates repository
        bitbucket_project: Bitbucket project key of the templates repository
        bitbucket_repo: Bitbucket repository slug of the templates repository
        bitbucket_username: Optional user for basic authentication
        bitbucket_password: Optional password for basic authentication
        github_host: Custom host for the public templates archive (None = github.com)
        github_org: Organisation owning the public templates repository
        github_repo: Name of the public templates repository
        http_proxy: Optional outbound proxy as host[:port] for the public store
        cache_base_path: Directory holding one extracted templates directory per version
        cache_ttl_hours: Hours after which a cached templates version expires
        connect_timeout: Connect timeout for template downloads (seconds)
        read_timeout: Read timeout for template downloads (seconds)
        converter_binary: HTML to PDF converter executable
        converter_timeout: Seconds before a hanging converter process is killed
        log_level: Console log level
        log_dir: Optional directory for log files
    """

    bitbucket_url: Optional[str] = None
    bitbucket_project: Optional[str] = None
    bitbucket_repo: Optional[str] = None
    bitbucket_username: Optional[str] = None
    bitbucket_password: Optional[str] = None
    github_host: Optional[str] = None
    github_org: str = "opendevstack"
    github_repo: str = "ods-document-generation-templates"
    http_proxy: Optional[str] = None
    cache_base_path: str = "/tmp/docgen/templates"
    cache_ttl_hours: float = 24.0
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    converter_binary: str = "wkhtmltopdf"
    converter_timeout: float = 300.0
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(hours=self.cache_ttl_hours)

    @property
    def http_timeout(self) -> tuple:
        """(connect, read) timeout pair as accepted by requests."""
        return (self.connect_timeout, self.read_timeout)


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DocGenConfig:
    """
    Resolve configuration from defaults, an optional YAML file and the environment.

    Args:
        config_file: YAML file with DocGenConfig keys (default: DOCGEN_CONFIG_FILE if set)
        environ: Environment mapping (default: os.environ after load_dotenv())

    Returns:
        Validated DocGenConfig

    Raises:
        ConfigurationError: If a value cannot be converted or fails validation
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    conf = OmegaConf.structured(DocGenConfig)

    config_file = config_file or environ.get(CONFIG_FILE_ENV)
    if config_file:
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")

    overrides = {
        field_name: environ[env_key]
        for env_key, field_name in ENV_KEYS.items()
        if environ.get(env_key)
    }

    try:
        if config_file:
            conf = OmegaConf.merge(conf, OmegaConf.load(config_file))
        conf = OmegaConf.merge(conf, OmegaConf.create(overrides))
        config = OmegaConf.to_object(conf)
    except Exception as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    validate_config(config)
    return config


def validate_config(config: DocGenConfig) -> None:
    """
    Fail fast on values that would only break later at request time.

    Raises:
        ConfigurationError: On the first invalid value
    """
    if not config.cache_base_path:
        raise ConfigurationError("cache_base_path must not be empty")

    for name in ("cache_ttl_hours", "connect_timeout", "read_timeout", "converter_timeout"):
        value = getattr(config, name)
        if value <= 0:
            raise ConfigurationError(f"{name} must be positive, got {value}")

    if not config.converter_binary:
        raise ConfigurationError("converter_binary must not be empty")
