import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from contract_assembly.api.v1.api import api_router
from contract_assembly.core.config import settings
from contract_assembly.core.exceptions import ContractEngineError
from contract_assembly.core.logging import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)


@app.exception_handler(ContractEngineError)
async def contract_engine_error_handler(request: Request, exc: ContractEngineError) -> JSONResponse:
    """Render engine errors as ``{code, message, details}``."""
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/healthz", tags=["health"])
def root_health() -> dict[str, str]:
    """Basic health endpoint."""
    return {"status": "ok"}


app.include_router(api_router, prefix="/api/v1")
