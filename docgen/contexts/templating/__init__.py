"""
Templating Context

Responsibilities:
- Downloads versioned template archives from the configured store (Bitbucket or GitHub)
- Extracts archives into a uniform templates/ layout
- Caches extracted templates per version with time-based expiry
- Executes partial templates against request data

Owns: Template acquisition, template cache directories, template execution
Never: Converts HTML to PDF
"""

from docgen.contexts.templating.archive import extract_zip_archive
from docgen.contexts.templating.cache import CacheEntry, TemplateCache, remove_directory
from docgen.contexts.templating.engine import flatten_template, render_template
from docgen.contexts.templating.exceptions import (
    AccessDeniedError,
    BranchNotFoundError,
    RepositoryNotFoundError,
    TemplatePartNotFoundError,
    TemplateRenderError,
    TemplateStoreConfigError,
    TemplateStoreError,
)
from docgen.contexts.templating.stores import (
    BitbucketTemplatesStore,
    GithubTemplatesStore,
    TemplatesStore,
    select_templates_store,
)

__all__ = [
    # Stores
    "TemplatesStore",
    "BitbucketTemplatesStore",
    "GithubTemplatesStore",
    "select_templates_store",
    # Archive and cache
    "extract_zip_archive",
    "TemplateCache",
    "CacheEntry",
    "remove_directory",
    # Template execution
    "render_template",
    "flatten_template",
    # Errors
    "TemplateStoreError",
    "TemplateStoreConfigError",
    "BranchNotFoundError",
    "AccessDeniedError",
    "RepositoryNotFoundError",
    "TemplatePartNotFoundError",
    "TemplateRenderError",
]
