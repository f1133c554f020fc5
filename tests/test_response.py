import json

from fastapi import status

from a11y_insights.platform.response import api_response


def body(response):
    return json.loads(response.body)


def test_success_envelope_has_no_errors_key():
    payload = body(api_response(data={"rows": 2}, message="Fetched"))

    assert payload == {"status_code": 200, "status": "success", "message": "Fetched", "data": {"rows": 2}}


def test_error_envelope_always_lists_errors():
    payload = body(api_response(status_code=status.HTTP_404_NOT_FOUND))

    assert payload["status"] == "error"
    assert payload["message"] == "Not Found"
    assert payload["errors"] == []


def test_errors_are_carried_through():
    response = api_response(
        message="Analytics is not configured",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        errors=["BQ_DATASET is missing"],
    )

    assert response.status_code == 503
    assert body(response)["errors"] == ["BQ_DATASET is missing"]


def test_unknown_status_code_gets_generic_message():
    assert body(api_response(status_code=599))["message"] == "Error"
