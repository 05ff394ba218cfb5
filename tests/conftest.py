import random
import socket
from concurrent.futures import ThreadPoolExecutor

import pytest

from kexlab.common.transport import FramedTransport


@pytest.fixture
def socket_pair():
    a, b = socket.socketpair()
    yield a, b
    for s in (a, b):
        try:
            s.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        s.close()


@pytest.fixture
def transports(socket_pair):
    a, b = socket_pair
    return FramedTransport(a), FramedTransport(b)


@pytest.fixture
def background():
    """Executor for the peer side of a two-party exchange."""
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=False)


@pytest.fixture
def rng():
    return random.Random(1234)
