"""HTTP route handlers exposing the notebook operations as JSON."""

import time
from typing import TYPE_CHECKING, Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from cellbook.cells import Cell
from cellbook.sandbox import StagedFile

if TYPE_CHECKING:
    from cellbook.notebook import Notebook


class BadRequest(Exception):
    """Request body is not what the route expects."""


async def read_body(request: Request) -> dict[str, Any]:
    """Parse a JSON object body.

    Raises:
        BadRequest: If the body is not a JSON object
    """
    try:
        body = await request.json()
    except ValueError:
        raise BadRequest("Invalid JSON body")
    if not isinstance(body, dict):
        raise BadRequest("JSON body must be an object")
    return body


def require_str(body: dict[str, Any], name: str, allow_empty: bool = False) -> str:
    """Fetch a required string field."""
    value = body.get(name)
    if not isinstance(value, str) or (not allow_empty and not value):
        raise BadRequest(f"Missing required field: {name}")
    return value


def parse_files(body: dict[str, Any]) -> list[StagedFile]:
    """Fetch the files list of generate-with-files."""
    raw_files = body.get("files")
    if not isinstance(raw_files, list) or not raw_files:
        raise BadRequest("Missing required field: files")

    files = []
    for item in raw_files:
        if not isinstance(item, dict):
            raise BadRequest("Each file must be an object with name and content")
        files.append(
            StagedFile(
                name=require_str(item, "name"),
                content=require_str(item, "content", allow_empty=True),
                content_type=item.get("content_type"),
            )
        )
    return files


def bad_request(error: BadRequest) -> JSONResponse:
    return JSONResponse({"error": str(error)}, status_code=400)


def create_routes(notebook: "Notebook") -> list[Route]:
    """Create HTTP routes for the notebook.

    Args:
        notebook: The configured Notebook instance

    Returns:
        List of Starlette routes
    """

    async def health(request: Request) -> Response:
        """Health check endpoint."""
        return JSONResponse(
            {
                "status": "ok",
                "timestamp": time.time(),
            }
        )

    async def run(request: Request) -> Response:
        """Run one cell.

        Body: {"code", "cell_id"?, "ai_generated"?, "confirmed"?}. Cells
        flagged ai_generated go through the review gate.
        """
        try:
            body = await read_body(request)
            code = require_str(body, "code", allow_empty=True)
        except BadRequest as e:
            return bad_request(e)

        if body.get("ai_generated") or body.get("cell_id"):
            cell = Cell(code=code, ai_generated=bool(body.get("ai_generated")))
            if body.get("cell_id"):
                cell.id = str(body["cell_id"])
            if body.get("confirmed"):
                cell.confirm()
            return JSONResponse(await notebook.run_cell(cell))

        return JSONResponse(await notebook.run(code))

    async def run_all(request: Request) -> Response:
        """Run cells in order. Body: {"codes": [...]}."""
        try:
            body = await read_body(request)
        except BadRequest as e:
            return bad_request(e)

        codes = body.get("codes")
        if not isinstance(codes, list) or not all(isinstance(c, str) for c in codes):
            return bad_request(BadRequest("Missing required field: codes"))

        return JSONResponse(await notebook.run_all(codes))

    async def generate(request: Request) -> Response:
        """Generate code. Body: {"prompt"}."""
        try:
            body = await read_body(request)
            prompt = require_str(body, "prompt")
        except BadRequest as e:
            return bad_request(e)

        return JSONResponse(await notebook.generate_code(prompt))

    async def generate_with_files(request: Request) -> Response:
        """Stage files and generate code. Body: {"prompt", "files": [...]}."""
        try:
            body = await read_body(request)
            prompt = require_str(body, "prompt")
            files = parse_files(body)
        except BadRequest as e:
            return bad_request(e)

        return JSONResponse(await notebook.generate_code_with_files(prompt, files))

    async def analyze(request: Request) -> Response:
        """Analyze output. Body: {"output", "results"?}."""
        try:
            body = await read_body(request)
            output = require_str(body, "output", allow_empty=True)
        except BadRequest as e:
            return bad_request(e)

        results = body.get("results") or []
        if not isinstance(results, list) or not all(isinstance(r, dict) for r in results):
            return bad_request(BadRequest("results must be a list of objects"))

        return JSONResponse(await notebook.analyze_output(output, results))

    async def fix(request: Request) -> Response:
        """Suggest a fix. Body: {"code", "error"}."""
        try:
            body = await read_body(request)
            code = require_str(body, "code")
            error = require_str(body, "error")
        except BadRequest as e:
            return bad_request(e)

        return JSONResponse(await notebook.fix_code(code, error))

    async def time_remaining(request: Request) -> Response:
        """Seconds left in the sandbox session."""
        return JSONResponse(notebook.time_remaining())

    return [
        Route("/health", health, methods=["GET"]),
        Route("/ping", health, methods=["GET"]),
        Route("/run", run, methods=["POST"]),
        Route("/run-all", run_all, methods=["POST"]),
        Route("/generate", generate, methods=["POST"]),
        Route("/generate-with-files", generate_with_files, methods=["POST"]),
        Route("/analyze", analyze, methods=["POST"]),
        Route("/fix", fix, methods=["POST"]),
        Route("/sandbox/time-remaining", time_remaining, methods=["GET"]),
    ]
