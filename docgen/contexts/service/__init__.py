"""
Service Context

Responsibilities:
- Exposes document generation over HTTP (POST /document)
- Validates request fields before any template or converter work
- Reports conversion health (GET /health)

Owns: Request validation, response encoding, HTTP status mapping
Never: Renders templates or converts documents itself (delegates to rendering)
"""

from docgen.contexts.service.app import MissingArgumentError, create_app, validate_request_params

__all__ = [
    "create_app",
    "validate_request_params",
    "MissingArgumentError",
]
