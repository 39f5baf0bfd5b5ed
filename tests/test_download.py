"""Unit tests for LocalConnector downloads using httpx MockTransport."""

import os
import threading

import httpx

from filetools import DownloadCancelled, FailureCause, LocalConnector

from .conftest import PAYLOADS, serve


class Callbacks:
    """Collects download callbacks."""

    def __init__(self):
        self.done = threading.Event()
        self.path = None
        self.error = None
        self.failed = False

    def on_success(self, path):
        self.path = path
        self.done.set()

    def on_failure(self, error):
        self.failed = True
        self.error = error
        self.done.set()


class TestDownload:

    def test_download_to_new_file(self, connector, tmp_path):
        callbacks = Callbacks()
        future = connector.download(
            'http://files.test/photo.png', str(tmp_path / 'out'), 'photo.png',
            on_success=callbacks.on_success, on_failure=callbacks.on_failure
        )
        result = future.result(timeout=5)
        assert result
        assert callbacks.done.wait(timeout=5)
        assert not callbacks.failed
        assert callbacks.path == str(tmp_path / 'out' / 'photo.png')
        assert (tmp_path / 'out' / 'photo.png').read_bytes() == PAYLOADS['/photo.png']

    def test_auto_name_keeps_existing_file(self, connector, tmp_path):
        (tmp_path / 'photo.png').write_bytes(b'original')
        result = connector.download(
            'http://files.test/photo.png', str(tmp_path), 'photo.png', auto_name=True
        ).result(timeout=5)
        assert result.path == str(tmp_path / 'photo(1).png')
        assert (tmp_path / 'photo.png').read_bytes() == b'original'
        assert (tmp_path / 'photo(1).png').read_bytes() == PAYLOADS['/photo.png']

    def test_auto_name_probes_further(self, connector, tmp_path):
        (tmp_path / 'photo.png').write_bytes(b'original')
        (tmp_path / 'photo(1).png').write_bytes(b'first copy')
        result = connector.download(
            'http://files.test/photo.png', str(tmp_path), 'photo.png', auto_name=True
        ).result(timeout=5)
        assert result.path == str(tmp_path / 'photo(2).png')

    def test_replaces_existing_file(self, connector, tmp_path):
        (tmp_path / 'notes.txt').write_bytes(b'stale')
        result = connector.download('http://files.test/notes.txt', str(tmp_path), 'notes.txt').result(timeout=5)
        assert result
        assert (tmp_path / 'notes.txt').read_bytes() == PAYLOADS['/notes.txt']
        assert os.listdir(tmp_path) == ['notes.txt']

    def test_missing_remote(self, connector, tmp_path):
        callbacks = Callbacks()
        result = connector.download(
            None, str(tmp_path), 'photo.png',
            on_success=callbacks.on_success, on_failure=callbacks.on_failure
        ).result(timeout=5)
        assert not result
        assert result.cause == FailureCause.INVALID_ARGUMENT
        assert result.error is None
        assert callbacks.done.is_set()
        assert callbacks.failed
        assert callbacks.error is None
        assert os.listdir(tmp_path) == []

    def test_http_error(self, connector, tmp_path):
        (tmp_path / 'missing.bin').write_bytes(b'keep me')
        callbacks = Callbacks()
        result = connector.download(
            'http://files.test/missing.bin', str(tmp_path), 'missing.bin',
            on_success=callbacks.on_success, on_failure=callbacks.on_failure
        ).result(timeout=5)
        assert not result
        assert result.cause == FailureCause.TRANSFER_ERROR
        assert isinstance(result.error, httpx.HTTPStatusError)
        assert callbacks.done.wait(timeout=5)
        assert isinstance(callbacks.error, httpx.HTTPStatusError)
        assert (tmp_path / 'missing.bin').read_bytes() == b'keep me'
        assert os.listdir(tmp_path) == ['missing.bin']

    def test_transport_error(self, tmp_path):
        def refuse(request):
            raise httpx.ConnectError('connection refused', request=request)

        with LocalConnector(root=str(tmp_path), transport=httpx.MockTransport(refuse)) as fs:
            result = fs.download('http://files.test/photo.png', str(tmp_path), 'photo.png').result(timeout=5)
        assert result.cause == FailureCause.TRANSFER_ERROR
        assert isinstance(result.error, httpx.ConnectError)
        assert os.listdir(tmp_path) == []

    def test_cancelled_transfer(self, connector, tmp_path):
        cancel = threading.Event()
        cancel.set()
        result = connector.download(
            'http://files.test/photo.png', str(tmp_path), 'photo.png', cancel_event=cancel
        ).result(timeout=5)
        assert not result
        assert result.cause == FailureCause.CANCELLED
        assert os.listdir(tmp_path) == []

    def test_cancel_midway_keeps_previous_file(self, tmp_path):
        cancel = threading.Event()

        def body():
            yield b'abc'
            cancel.set()
            yield b'def'

        (tmp_path / 'big.bin').write_bytes(b'previous')
        callbacks = Callbacks()
        with LocalConnector(root=str(tmp_path), chunk_size=3, transport=httpx.MockTransport(
            lambda request: httpx.Response(200, content=body())
        )) as fs:
            result = fs.download(
                'http://files.test/big.bin', str(tmp_path), 'big.bin', cancel_event=cancel,
                on_success=callbacks.on_success, on_failure=callbacks.on_failure
            ).result(timeout=5)
        assert result.cause == FailureCause.CANCELLED
        assert isinstance(result.error, DownloadCancelled)
        assert callbacks.done.wait(timeout=5)
        assert isinstance(callbacks.error, DownloadCancelled)
        assert os.listdir(tmp_path) == ['big.bin']
        assert (tmp_path / 'big.bin').read_bytes() == b'previous'

    def test_cancel_queued_download(self, tmp_path):
        gate = threading.Event()

        def slow_serve(request):
            gate.wait(5)
            return serve(request)

        callbacks = Callbacks()
        with LocalConnector(
            root=str(tmp_path), download_workers=1, transport=httpx.MockTransport(slow_serve)
        ) as fs:
            try:
                first = fs.download('http://files.test/photo.png', str(tmp_path), 'first.png')
                second = fs.download(
                    'http://files.test/photo.png', str(tmp_path), 'second.png',
                    on_success=callbacks.on_success, on_failure=callbacks.on_failure
                )
                assert second.cancel()
            finally:
                gate.set()
            assert first.result(timeout=5)
        assert second.cancelled()
        assert callbacks.done.is_set()
        assert callbacks.failed
        assert callbacks.error is None
        assert os.listdir(tmp_path) == ['first.png']

    def test_small_chunks(self, tmp_path):
        with LocalConnector(root=str(tmp_path), chunk_size=3, transport=httpx.MockTransport(
            lambda request: httpx.Response(200, content=b'0123456789')
        )) as fs:
            result = fs.download('http://files.test/digits', str(tmp_path), 'digits.txt').result(timeout=5)
        assert result
        assert (tmp_path / 'digits.txt').read_bytes() == b'0123456789'
