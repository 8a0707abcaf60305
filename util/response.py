from enum import Enum


class Status(str, Enum):
    ok = "ok"
    error = "error"


def generate_response(status: Status, code: int, message: str = None, data=None):
    result = {
        "status": status.value,
        "code": code,
    }
    if message:
        result["message"] = message
    if data is not None:
        result["data"] = data
    return result


def ok(data=None, code: int = 200):
    return generate_response(Status.ok, code, None, data)


def error(code: int, message: str, data=None):
    return generate_response(Status.error, code, message, data)
