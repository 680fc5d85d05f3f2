"""
Request id bound to the current context, read by the log formatters.
"""

import contextvars
import uuid

_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "wealth_rm_request_id", default=None
)


def get_request_id() -> str | None:
    return _request_id_var.get()


class RequestContext:
    """
    Binds a request id (a fresh `req-<hex>` when none is given) for a block.

        with RequestContext(request_id=header_value):
            engine.rank(...)
    """

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id or f"req-{uuid.uuid4().hex[:16]}"
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "RequestContext":
        self._token = _request_id_var.set(self.request_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _request_id_var.reset(self._token)
