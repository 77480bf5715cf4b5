"""Generate API — natural-language description in, spreadsheet formula out."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from formula_gate.core.client_ip import get_client_id
from formula_gate.core.dependencies import get_gate
from formula_gate.gateway.gate import FormulaGate
from formula_gate.gateway.types import GateRequest
from formula_gate.schemas.generate import GenerateError, GenerateRequest, GenerateResponse

router = APIRouter(tags=["generate"])


@router.post(
    "/generate",
    response_model=GenerateResponse,
    response_model_exclude_none=True,
    responses={400: {"model": GenerateError}, 429: {"model": GenerateError}, 500: {"model": GenerateError}},
)
async def generate_formula(
    body: GenerateRequest,
    request: Request,
    gate: FormulaGate = Depends(get_gate),
):
    """Convert a description into a formula, through cache and usage limits.

    Called once per user action; rejections carry a localized message and
    are never retried server-side.
    """
    response = await gate.handle(GateRequest(input=body.input, client_id=get_client_id(request)))
    if not response.ok:
        return JSONResponse(status_code=response.status_code, content=response.to_dict())
    return response.to_dict()
