from http import HTTPStatus
from typing import Any, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def reason_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error" if status_code >= 400 else "OK"


def api_response(
    *,
    data: Optional[Any] = None,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
    errors: Optional[List[Any]] = None,
) -> JSONResponse:
    """
    Envelope shared by every HTTP response of the service.

    Error responses (status_code >= 400) always carry an "errors" list, empty
    when there is nothing more specific than the message. message defaults to
    the HTTP reason phrase.
    """
    failed = status_code >= 400
    content = {
        "status_code": status_code,
        "status": "error" if failed else "success",
        "message": message or reason_phrase(status_code),
        "data": jsonable_encoder(data) if data is not None else {},
    }
    if failed:
        content["errors"] = jsonable_encoder(errors or [])

    return JSONResponse(status_code=status_code, content=content)
