# tests/conftest.py
import importlib
import random
import time

import anyio
import pytest
from fastapi.testclient import TestClient

FAST = {"deploy_delay": 0.03, "confirm_delay": 0.02}


@pytest.fixture()
def anyio_backend():
    # леджер построен на asyncio (call_later + Queue)
    return "asyncio"


@pytest.fixture()
def app():
    main = importlib.import_module("qubilab.main")
    return main.build_app(failure_rate=0.0, rng=random.Random(7), **FAST)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_ledger():
    ledger_mod = importlib.import_module("qubilab.ledger")

    def _make(**kw):
        opts = dict(FAST, rng=random.Random(42))
        opts.update(kw)
        return ledger_mod.LedgerSimulator(**opts)
    return _make


@pytest.fixture()
def wait_terminal():
    """Опрос леджера до терминального статуса (уведомлений нет)."""
    async def _wait(ledger, tx_id, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            tx = ledger.get_transaction(tx_id)
            if tx is not None and tx.terminal:
                return tx
            await anyio.sleep(0.005)
        raise AssertionError(f"tx {tx_id} still pending after {timeout}s")
    return _wait


@pytest.fixture()
def poll_tx():
    """То же самое, но через HTTP API."""
    def _poll(c, tx_id, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            body = c.get(f"/transactions/{tx_id}").json()
            if body["status"] != "pending":
                return body
            time.sleep(0.01)
        raise AssertionError(f"tx {tx_id} still pending after {timeout}s")
    return _poll
