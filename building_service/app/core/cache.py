from fastapi import Request

from shared.utils.scoped_cache import ScopedCache


def get_request_cache(request: Request) -> ScopedCache:
    """The registration-request cache owned by the running app."""
    return request.app.state.request_cache
