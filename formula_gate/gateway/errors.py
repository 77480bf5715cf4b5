"""Gate error taxonomy.

Every rejection the gate can produce is a `GateError` subclass carrying a
typed reason, the HTTP status it maps to and the localized message shown
to the user. The orchestrator catches them at its boundary; they never
escape as raw failures.
"""

from __future__ import annotations

from formula_gate.gateway.types import RejectReason


class GateError(Exception):
    """Base class for all gate rejections."""

    reason: RejectReason = RejectReason.PROVIDER_ERROR
    status_code: int = 500
    default_message: str = "수식을 생성하는 중 오류가 발생했습니다."

    def __init__(self, message: str | None = None, detail: str = ""):
        self.message = message or self.default_message
        # internal detail for logs, never sent to the client
        self.detail = detail
        super().__init__(self.message)


class InputEmpty(GateError):
    reason = RejectReason.INPUT_EMPTY
    status_code = 400
    default_message = "입력을 입력해주세요."


class InputTooLong(GateError):
    reason = RejectReason.INPUT_TOO_LONG
    status_code = 400

    def __init__(self, max_length: int = 300, detail: str = ""):
        super().__init__(f"입력은 {max_length}자 이내여야 합니다.", detail=detail)


class QuotaExceeded(GateError):
    reason = RejectReason.QUOTA_EXCEEDED
    status_code = 429
    default_message = "일일 사용 한도를 초과했습니다. 내일 다시 시도해주세요."


class RateLimited(GateError):
    reason = RejectReason.RATE_LIMITED
    status_code = 429
    default_message = "요청이 너무 많습니다. 잠시 후 다시 시도해주세요."


class GenerationInvalid(GateError):
    reason = RejectReason.GENERATION_INVALID
    status_code = 400
    default_message = "유효한 수식을 생성하지 못했습니다. 표현을 조금 바꿔보세요."


class GenerationTimeout(GenerationInvalid):
    """The provider did not answer within the generation timeout."""

    default_message = "수식 생성 시간이 초과되었습니다. 잠시 후 다시 시도해주세요."


class ProviderError(GateError):
    """Any failure of the external generation call."""

    reason = RejectReason.PROVIDER_ERROR
    status_code = 500

    def __init__(self, message: str | None = None, detail: str = "", upstream_status: int = 0):
        super().__init__(message, detail=detail)
        self.upstream_status = upstream_status
