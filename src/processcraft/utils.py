from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .results import Err, ErrorKind, Ok, Result

_ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    # Not-owned resources are reported exactly like missing ones
    ErrorKind.AUTHORIZATION: status.HTTP_404_NOT_FOUND,
    ErrorKind.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.NETWORK: status.HTTP_502_BAD_GATEWAY,
}


# PUBLIC_INTERFACE
def error_envelope(err: Err) -> Dict[str, Any]:
    """
    Build the error body shared by every endpoint.

    Returns:
        Dict with keys: status ("error"), message, errors.
    """
    return {
        "status": "error",
        "message": err.message,
        "errors": err.field_errors or None,
    }


# PUBLIC_INTERFACE
def result_response(
    result: Result[Any],
    serialize: Optional[Callable[[Any], Any]] = None,
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Render a service result as a JSON envelope with a matching HTTP status.

    Args:
        result: The Ok/Err value returned by a service.
        serialize: Optional converter applied to ``Ok.data`` before encoding.
        success_status: Status code used for Ok results.
    """
    if isinstance(result, Ok):
        data = serialize(result.data) if serialize is not None and result.data is not None else result.data
        body = {
            "status": "success",
            "message": result.message,
            "data": jsonable_encoder(data),
        }
        return JSONResponse(status_code=success_status, content=body)
    return JSONResponse(status_code=_ERROR_STATUS[result.kind], content=error_envelope(result))
