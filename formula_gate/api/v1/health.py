from fastapi import APIRouter, Depends

from formula_gate.core.dependencies import get_gate
from formula_gate.gateway.gate import FormulaGate

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(gate: FormulaGate = Depends(get_gate)):
    return {"status": "ok", "gate": gate.get_status()}
