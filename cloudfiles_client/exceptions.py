from typing import Optional


class NoTokenFoundException(Exception):
    pass


class NoStorageUrlFoundException(Exception):
    pass


class AuthFailedException(Exception):
    pass


class RackspaceApiError(Exception):
    def __init__(self, status_code: int, reason: str, response=None):
        super().__init__(f"Rackspace Error ({status_code}): {reason}")
        self.status_code = status_code
        self.reason = reason
        self.response = response


class CurlProcessError(Exception):
    def __init__(self, returncode: int, stderr: str = ""):
        super().__init__(f"curl exited with status {returncode}: {stderr.strip()}")
        self.returncode = returncode
        self.stderr = stderr


class CurlOutputError(Exception):
    pass


# Failure codes from the CloudFiles API reference
fail_code_map = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Resize not allowed",
    404: "Item not found",
    409: "Build in progress",
    413: "Over Limit",
    415: "Bad Media Type",
    500: "Fault",
    503: "Service Unavailable"
}

success_code_map = {
    200: "OK",
    202: "Accepted",
    203: "Non-authoritative information",
    204: "No content"
}


def check_status(status_code: int, response=None) -> Optional[RackspaceApiError]:
    """Return the error for a failure status, or None for anything else"""
    status_code = int(status_code)
    if status_code in fail_code_map:
        return RackspaceApiError(status_code, fail_code_map[status_code], response=response)
    return None


def is_classified(status_code: int) -> bool:
    return int(status_code) in fail_code_map or int(status_code) in success_code_map
