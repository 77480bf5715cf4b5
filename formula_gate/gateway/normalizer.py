"""Key Normalizer and Output Parser.

  - normalize_input: canonical cache key for a raw user request
  - parse_generation: turns raw generator text into a FormulaResult
"""

from __future__ import annotations

import logging
import re

from formula_gate.gateway.errors import GenerationInvalid
from formula_gate.gateway.types import FormulaResult

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_input(text: str) -> str:
    """Lowercase, trim and collapse whitespace runs to a single space.

    Idempotent: normalize_input(normalize_input(s)) == normalize_input(s).
    """
    return _WHITESPACE_RUN.sub(" ", text.lower().strip())


def parse_generation(text: str) -> FormulaResult:
    """Parse provider output of the form "=FORMULA\\nexplanation".

    Raises:
        GenerationInvalid: fewer than two non-empty lines, or the first
            line does not start with "=".
    """
    text = text or ""
    lines = [line for line in text.strip().split("\n") if line.strip()]

    if len(lines) < 2 or not lines[0].startswith("="):
        logger.warning("Unparseable generation (%d non-empty lines)", len(lines))
        raise GenerationInvalid(detail=f"unparseable output: {text[:200]!r}")

    formula = lines[0].strip()
    explanation = " ".join(lines[1:]).strip()
    return FormulaResult(formula=formula, explanation=explanation)
