"""
HTTP service for document generation.

Endpoints:
    POST /document  {metadata: {type, version}, data: {...}} → {"data": base64(pdf)}
    GET  /health    Converts a one-line document and reports passing/failing

Run:
    uvicorn docgen.contexts.service.app:create_app --factory --host 0.0.0.0 --port 8080

Handlers are plain (sync) functions, so FastAPI runs them in its threadpool and
a slow conversion never blocks the event loop.
"""

import base64
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

import docgen
from docgen.contexts.rendering import DocumentGenerator
from docgen.contexts.service.logger import _log_info, log_document_request, log_request_failure
from docgen.utils.config import DocGenConfig, load_config
from docgen.utils.logger import setup_logger_from_config

SERVICE_NAME = "docgen"


class MissingArgumentError(ValueError):
    """Exception raised when a required request field is missing or null."""

    def __init__(self, argument: str):
        self.argument = argument
        super().__init__(f"missing argument '{argument}'")


def validate_request_params(body: Any) -> None:
    """
    Check the required fields of a document request.

    Raises:
        MissingArgumentError: For the first of metadata.type, metadata.version
                              and data that is missing or null
    """
    body = body if isinstance(body, dict) else {}
    metadata = body.get("metadata")
    metadata = metadata if isinstance(metadata, dict) else {}

    if metadata.get("type") is None:
        raise MissingArgumentError("metadata.type")

    if metadata.get("version") is None:
        raise MissingArgumentError("metadata.version")

    if body.get("data") is None:
        raise MissingArgumentError("data")


def create_app(
    config: Optional[DocGenConfig] = None,
    generator: Optional[DocumentGenerator] = None,
) -> FastAPI:
    """
    Create the service application.

    Args:
        config: Service configuration (default: load_config(), which also sets up
                logging from the loaded log_level and log_dir)
        generator: Document generator (default: built from config)

    Returns:
        FastAPI application
    """
    if generator is None:
        if config is None:
            # Entry point of "uvicorn --factory", where no CLI has configured logging
            config = load_config()
            setup_logger_from_config(config, "service")
        generator = DocumentGenerator(config)

    app = FastAPI(
        title="Document Generation Service",
        version=docgen.__version__,
    )
    app.state.generator = generator

    @app.exception_handler(RequestValidationError)
    def request_validation_handler(request: Request, exc: RequestValidationError):
        # Malformed JSON bodies are client errors like missing fields
        log_request_failure(request.url.path, 400, exc)
        return JSONResponse(status_code=400, content={"error": "invalid request body"})

    @app.post("/document")
    def create_document(body: Dict[str, Any] = Body(...)):
        """Generate a PDF document and return it base64-encoded."""
        try:
            validate_request_params(body)
        except MissingArgumentError as e:
            log_request_failure("/document", 400, e)
            return JSONResponse(status_code=400, content={"error": str(e)})

        log_document_request(body)
        metadata = body["metadata"]

        try:
            pdf = app.state.generator.generate(
                str(metadata["type"]), str(metadata["version"]), body["data"]
            )
        except Exception as e:
            log_request_failure("/document", 500, e)
            return JSONResponse(status_code=500, content={"error": str(e)})

        return {"data": base64.b64encode(pdf).decode("ascii")}

    @app.get("/health")
    def health_check():
        """Report whether HTML to PDF conversion works."""
        health = app.state.generator.check_health()

        result = {
            "service": SERVICE_NAME,
            "status": health.status,
            "time": health.time.isoformat(),
        }
        if health.message:
            result["message"] = health.message

        return JSONResponse(status_code=200 if health.passing else 500, content=result)

    _log_info(f"Service ready (templates cache: {generator.cache.base_path})")
    return app
