# tests/test_ledger.py
import asyncio

import anyio
import pytest

from qubilab.ledger import BadgeStatus, TxStatus

pytestmark = pytest.mark.anyio


async def test_deploy_is_pending_then_confirmed_one_block_later(make_ledger, wait_terminal):
    ledger = make_ledger()
    try:
        before = ledger.get_current_block()
        tx = await ledger.deploy_contract("class C {};", [])
        assert tx.status is TxStatus.PENDING
        assert 1000 <= tx.gas_used < 6000

        # подтверждение наступает только после задержки
        await anyio.sleep(ledger.deploy_delay + 0.2)
        hist = {t.tx_id: t for t in ledger.get_transaction_history()}
        assert hist[tx.tx_id].status is TxStatus.CONFIRMED
        assert hist[tx.tx_id].block_height == before + 1
        assert ledger.get_current_block() == before + 1
        # возвращённый объект - снимок, он не меняется
        assert tx.status is TxStatus.PENDING
    finally:
        await ledger.aclose()


async def test_deploy_creates_contract_entity(make_ledger):
    ledger = make_ledger()
    try:
        tx = await ledger.deploy_contract("class C {};", [1, "x"])
        contract_id = tx.message.rsplit(" ", 1)[-1]
        entity = await ledger.get_entity(contract_id)
        assert entity.contract_code == "class C {};"
        assert entity.balance == 0
        assert entity.state["deployed"] is True
        assert entity.state["constructor_args"] == [1, "x"]
    finally:
        await ledger.aclose()


async def test_deploy_always_confirms_even_when_sends_always_fail(make_ledger, wait_terminal):
    ledger = make_ledger(failure_rate=1.0)
    try:
        dep = await ledger.deploy_contract("code", [])
        snd = await ledger.send_transaction("code", "initialize", [])
        assert (await wait_terminal(ledger, dep.tx_id)).status is TxStatus.CONFIRMED
        failed = await wait_terminal(ledger, snd.tx_id)
        assert failed.status is TxStatus.FAILED
        assert failed.message == "Transaction failed during execution"
    finally:
        await ledger.aclose()


async def test_send_confirms_with_block_in_message(make_ledger, wait_terminal):
    ledger = make_ledger(failure_rate=0.0)
    try:
        tx = await ledger.send_transaction("code", "initialize", [1, 2])
        assert tx.status is TxStatus.PENDING
        assert 100 <= tx.gas_used < 1100
        assert tx.message == "Transaction sent to Qubic network. Function: initialize"
        done = await wait_terminal(ledger, tx.tx_id)
        assert done.status is TxStatus.CONFIRMED
        assert done.message == f"Transaction confirmed in block {done.block_height}"
    finally:
        await ledger.aclose()


async def test_send_failure_rate_is_roughly_ten_percent(make_ledger, wait_terminal):
    ledger = make_ledger(confirm_delay=0.0)
    try:
        txs = [await ledger.send_transaction("code", "f", []) for _ in range(400)]
        done = [await wait_terminal(ledger, t.tx_id) for t in txs]
        failed = sum(1 for t in done if t.status is TxStatus.FAILED)
        assert 10 <= failed <= 80
    finally:
        await ledger.aclose()


async def test_concurrent_calls_unique_ids_and_monotonic_blocks(make_ledger, wait_terminal):
    ledger = make_ledger(failure_rate=0.5)
    try:
        before = ledger.get_current_block()
        calls = []
        for i in range(50):
            if i % 3 == 0:
                calls.append(ledger.deploy_contract(f"code{i}", []))
            else:
                calls.append(ledger.send_transaction(f"code{i}", "f", [i]))
        txs = await asyncio.gather(*calls)
        ids = [t.tx_id for t in txs]
        assert len(set(ids)) == len(ids)

        done = [await wait_terminal(ledger, t) for t in ids]
        heights = sorted(t.block_height for t in done)
        # каждый терминальный переход - ровно +1 к счётчику блоков
        assert heights == list(range(before + 1, before + 51))
        assert ledger.get_current_block() == before + 50
        assert ledger.pending_count() == 0
    finally:
        await ledger.aclose()


async def test_history_is_a_snapshot_copy(make_ledger):
    ledger = make_ledger()
    try:
        await ledger.send_transaction("code", "f", [])
        hist = ledger.get_transaction_history()
        hist.clear()
        assert len(ledger.get_transaction_history()) == 1
    finally:
        await ledger.aclose()


async def test_unknown_entity_is_created_once(make_ledger):
    ledger = make_ledger()
    a = await ledger.get_entity("unknown-id")
    b = await ledger.get_entity("unknown-id")
    assert a.id == b.id == "unknown-id"
    assert a.balance == b.balance
    assert 0 <= a.balance < 1_000_000
    assert a.state["initialized"] is True and a.state["version"] == "1.0.0"
    assert a.contract_code is None


async def test_mint_sbt_is_soulbound_and_immutable(make_ledger):
    ledger = make_ledger()
    meta = {"course": "intro", "soulbound": False, "tags": ["a"], "extra": {"level": 1}}
    badge = await ledger.mint_sbt("alice", "course", meta)
    assert badge.status is BadgeStatus.MINTED
    assert badge.metadata["soulbound"] is True
    assert badge.metadata["badgeType"] == "course"
    assert badge.metadata["blockchain"] == "Qubic"
    assert isinstance(badge.metadata["mintedAt"], int)

    # исходный словарь и снятые копии не влияют на запись
    meta["course"] = "changed"
    meta["tags"].append("b")
    badge.to_dict()["metadata"]["course"] = "hacked"
    with pytest.raises(TypeError):
        badge.metadata["course"] = "x"
    # вложенные значения тоже заморожены
    with pytest.raises(TypeError):
        badge.metadata["extra"]["level"] = 99
    with pytest.raises(AttributeError):
        badge.metadata["tags"].append("c")

    await ledger.mint_sbt("bob", "quiz", {})
    await ledger.send_transaction("code", "f", [])
    stored = ledger.get_badges()[0]
    assert stored is badge
    assert stored.metadata["course"] == "intro"
    assert stored.metadata["tags"] == ("a",)
    assert stored.metadata["extra"]["level"] == 1
    assert stored.to_dict()["metadata"]["tags"] == ["a"]
    assert stored.to_dict()["metadata"]["extra"] == {"level": 1}
    assert [b.recipient for b in ledger.get_badges()] == ["alice", "bob"]
    await ledger.aclose()


async def test_closed_ledger_rejects_new_transactions(make_ledger):
    ledger = make_ledger()
    await ledger.aclose()
    with pytest.raises(RuntimeError):
        await ledger.send_transaction("code", "f", [])


async def test_simulate_network_delay_respects_scale(make_ledger):
    ledger = make_ledger(network_delay_scale=0.0)
    with anyio.fail_after(1):
        await ledger.simulate_network_delay()


async def test_aclose_resolves_transactions_still_in_flight(make_ledger):
    ledger = make_ledger(deploy_delay=5.0, confirm_delay=5.0, failure_rate=0.0)
    before = ledger.get_current_block()
    deploy = await ledger.deploy_contract("class C {};", [])
    call = await ledger.send_transaction("code", "f", [])
    assert ledger.pending_count() == 2

    with anyio.fail_after(1):
        await ledger.aclose()

    assert ledger.pending_count() == 0
    assert ledger.get_transaction(deploy.tx_id).status is TxStatus.CONFIRMED
    assert ledger.get_transaction(call.tx_id).status is TxStatus.CONFIRMED
    assert ledger.get_current_block() == before + 2
