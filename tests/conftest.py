"""Test configuration and fixtures."""

import httpx
import pytest

from filetools import AsyncLocalConnector, LocalConnector

PAYLOADS = {
    '/photo.png': b'\x89PNG fake image body',
    '/notes.txt': b'hello from the server\n',
}


def serve(request: httpx.Request) -> httpx.Response:
    """Serve PAYLOADS, 404 for anything else."""
    body = PAYLOADS.get(request.url.path)
    if body is None:
        return httpx.Response(404, content=b'not found')
    return httpx.Response(200, content=body, headers={'content-length': str(len(body))})


@pytest.fixture
def root(tmp_path):
    return tmp_path / 'root'


@pytest.fixture
def connector(root):
    with LocalConnector(root=str(root), transport=httpx.MockTransport(serve)) as fs:
        yield fs


@pytest.fixture
def async_connector(root):
    fs = AsyncLocalConnector(root=str(root), transport=httpx.MockTransport(serve))
    yield fs
    fs.close()
