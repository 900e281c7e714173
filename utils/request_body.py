from flask import request

from utils.errors import ValidationError


def json_body() -> dict:
    """The request's JSON object, ``{}`` when there is no JSON body."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data
