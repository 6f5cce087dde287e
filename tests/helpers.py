"""Builders for FTL wire bytes and an in-process mock FTL daemon."""

import os
import shutil
import socket
import struct
import tempfile
import threading
from typing import Dict, List, Optional

END = b'\xc1'

# `>stats` response captured from a Pi-hole instance
GOLDEN_STATS = bytes.fromhex(
    'D2 00 01 72 65 D2 00 00 0C 8E D2 00 00 00 19 CA 3F 47 20 FA D2 00 00 0E 5F '
    'D2 00 00 01 B3 D2 00 00 0A C2 D2 00 00 00 07 D2 00 00 00 05 CC 01 C1'
)


def int32(value: int) -> bytes:
    return b'\xd2' + struct.pack('>i', value)


def int64(value: int) -> bytes:
    return b'\xd3' + struct.pack('>q', value)


def float32(value: float) -> bytes:
    return b'\xca' + struct.pack('>f', value)


def uint8(value: int) -> bytes:
    return b'\xcc' + struct.pack('>B', value)


def string(value: str) -> bytes:
    data = value.encode('utf-8')
    return b'\xdb' + struct.pack('>I', len(data)) + data


def bucket_count(count: int) -> bytes:
    return b'\xcd' + struct.pack('>H', count)


def client_bucket(timestamp: int, counts: List[int]) -> bytes:
    return b'\xd2' + struct.pack('>I', timestamp) + b''.join(int32(c) for c in counts) + int32(-1)


class MockFTLDaemon:
    """Serve canned responses on a Unix socket, one connection per command."""

    def __init__(self, responses: Dict[str, bytes]):
        self.responses = responses
        self.commands: List[str] = []
        self._lock = threading.Lock()
        self._dir = tempfile.mkdtemp(prefix='ftl')
        self.socket_path = os.path.join(self._dir, 'FTL.sock')
        self._listener: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()

    def start(self) -> 'MockFTLDaemon':
        self._listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._listener.bind(self.socket_path)
        self._listener.listen(16)
        self._listener.settimeout(0.1)
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
        if self._listener is not None:
            self._listener.close()
        shutil.rmtree(self._dir, ignore_errors=True)

    def _accept_loop(self) -> None:
        while not self._stopped.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            conn.settimeout(None)
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        with conn:
            command = conn.recv(512).decode('ascii')
            if not command:
                return
            with self._lock:
                self.commands.append(command)
            conn.sendall(self.responses.get(command, b''))
