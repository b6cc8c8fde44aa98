import json
from unittest.mock import MagicMock


def fake_response(status: int, body=None) -> MagicMock:
    """Stand-in for requests.Response with status_code and text."""
    response = MagicMock()
    response.status_code = status
    if body is None:
        response.text = ""
    elif isinstance(body, str):
        response.text = body
    else:
        response.text = json.dumps(body)
    return response
