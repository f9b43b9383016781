from __future__ import annotations


class PipelineError(Exception):
    """
    A failure of the markdown pipeline that maps to exactly one HTTP status.

    `str(error)` is diagnostic text for logs only. `public_detail` is the generic text that may be
    returned to the caller and never carries upstream bodies or internal error text.
    """

    status_code: int = 500
    code: str = "internal_error"
    detail: str = "Markdown conversion failed"

    @property
    def public_detail(self) -> str:
        return self.detail


class ForbiddenError(PipelineError):
    """The resolved target is not same-origin (SSRF rejection)."""

    status_code = 403
    code = "forbidden"
    detail = "Forbidden"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    @property
    def public_detail(self) -> str:
        # The reason only echoes the rejected hostname, which is caller input.
        return self.reason


class MissingHostError(ForbiddenError):
    code = "missing_host"

    def __init__(self) -> None:
        super().__init__("Missing Host header")


class NotFoundError(PipelineError):
    status_code = 404
    code = "not_found"
    detail = "Not Found"


class UpstreamError(PipelineError):
    """Upstream answered with a non-success status other than 404."""

    code = "upstream_error"
    detail = "Failed to fetch upstream page"

    def __init__(self, status: int, reason: str = "") -> None:
        super().__init__(f"Upstream responded with status={status} {reason}".strip())
        self.status_code = status
        self.reason = reason


class PayloadTooLargeError(PipelineError):
    status_code = 413
    code = "payload_too_large"
    detail = "Request Entity Too Large"


class UnsupportedMediaTypeError(PipelineError):
    status_code = 415
    code = "unsupported_media_type"
    detail = "Content-Type must be text/html or application/xhtml+xml"


class FetchTimeoutError(PipelineError):
    status_code = 504
    code = "timeout"
    detail = "Request Timeout"


class InternalError(PipelineError):
    status_code = 500
    code = "internal_error"
    detail = "Markdown conversion failed"


def wrap_exception(exc: BaseException) -> PipelineError:
    """
    Classify an arbitrary exception as a pipeline error.

    Pipeline errors are returned as-is. Timeouts become `FetchTimeoutError`; anything else is an
    `InternalError` with the original exception attached as the cause.
    """
    if isinstance(exc, PipelineError):
        return exc

    wrapped: PipelineError
    if isinstance(exc, TimeoutError):
        wrapped = FetchTimeoutError("Upstream fetch timed out")
    else:
        message = f"{exc.__class__.__name__}: {exc}".strip()
        wrapped = InternalError(message or exc.__class__.__name__)
    wrapped.__cause__ = exc
    return wrapped
