import uuid
from fastapi import Request

REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id(request: Request) -> str:
    """Return the id assigned to this request, reusing the caller's header when present."""
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
    return request_id


async def request_id_middleware(request: Request, call_next):
    """Tag every request with an id and echo it back in the response headers."""
    request_id = get_request_id(request)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
