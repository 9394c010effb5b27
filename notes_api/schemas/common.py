from pydantic import BaseModel


# ─── Error Detail (per field) ──────────────────────────────────────────────────
class ErrorDetail(BaseModel):
    field:   str
    code:    str
    message: str


# ─── Error Body ───────────────────────────────────────────────────────────────
class ErrorBody(BaseModel):
    code:    str
    message: str
    details: list[ErrorDetail] | None = None


# ─── Error Response ───────────────────────────────────────────────────────────
class ErrorResponse(BaseModel):
    error:      ErrorBody
    request_id: str


# ─── OpenAPI helpers ──────────────────────────────────────────────────────────
def error_responses(*status_codes: int) -> dict:
    """`responses=` mapping documenting the standard error envelope for the given codes."""
    return {code: {"model": ErrorResponse} for code in status_codes}
