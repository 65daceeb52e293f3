"""Exception hierarchy shared by the oauth and feishu packages"""


class FeishuError(Exception):
    """Base class for every failure surfaced by the publisher"""


class SessionExpiredError(FeishuError):
    """No usable access token: refresh failed or credentials are missing.

    Fatal to the publish operation and never retried.
    """


class TransportError(FeishuError):
    """Network failure or malformed response from the document service"""


class RemoteApiError(FeishuError):
    """The document service answered with a non-zero envelope code"""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} (code {self.code})"


class RelayRefreshError(Exception):
    """The OAuth relay could not exchange the refresh token"""
