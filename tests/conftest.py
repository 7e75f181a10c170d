import anyio
import pytest
import sse_starlette
from packaging import version


@pytest.fixture
def anyio_backend():
    return "asyncio"


# sse-starlette < 3.0 keeps a module-level exit Event that binds to the first
# event loop it is awaited on; later tests on a new loop would fail with
# "bound to a different event loop".
_SSE_STARLETTE_HAS_GLOBAL_STATE = version.parse(sse_starlette.__version__) < version.parse("3.0.0")


@pytest.fixture(autouse=True)
def fresh_sse_exit_event():
    if _SSE_STARLETTE_HAS_GLOBAL_STATE:
        from sse_starlette.sse import AppStatus

        AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]
    yield
    if _SSE_STARLETTE_HAS_GLOBAL_STATE:
        AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]
