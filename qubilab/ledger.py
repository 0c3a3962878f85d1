"""
Симулятор Qubic-леджера: транзакции, сущности (аккаунты/контракты), SBT-бейджи.

Никакой сети, VM и подписей - только состояние в памяти и искусственные
задержки. Каждая транзакция рождается в статусе pending и ровно один раз
переходит в терминальный статус (confirmed | failed).

Как устроено подтверждение:
  deploy/send кладут в очередь сообщение _Resolution через loop.call_later(delay, ...);
  единственный воркер (_run) разбирает очередь, применяет терминальный
  переход и увеличивает счётчик блоков. Только воркер меняет статусы и
  высоту, поэтому блокировки не нужны.

Уведомлений о подтверждении нет: вызывающий код опрашивает
get_transaction_history() / get_transaction().

Асимметрия исходов сохранена как есть: deploy всегда подтверждается,
send падает с вероятностью failure_rate (по умолчанию 0.1).
"""
from __future__ import annotations

import asyncio
import contextlib
import random
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from . import config
from .logging import get_logger

log = get_logger(__name__)


# газ: [low, high)
DEPLOY_GAS = (1000, 6000)
CALL_GAS = (100, 1100)
ENTITY_BALANCE_MAX = 1_000_000
ENTITY_VERSION = "1.0.0"
CHAIN_NAME = "Qubic"

KIND_DEPLOY = "deploy"
KIND_CALL = "call"


def _now_ms() -> int:
    return int(time.time() * 1000)


class TxStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class BadgeStatus(str, Enum):
    MINTED = "minted"
    FAILED = "failed"


@dataclass(frozen=True)
class Transaction:
    tx_id: str
    status: TxStatus
    block_height: int
    gas_used: int
    message: str
    kind: str = KIND_CALL

    @property
    def terminal(self) -> bool:
        return self.status is not TxStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tx_id": self.tx_id,
            "status": self.status.value,
            "block_height": self.block_height,
            "gas_used": self.gas_used,
            "message": self.message,
            "kind": self.kind,
        }


@dataclass
class Entity:
    id: str
    balance: int
    contract_code: Optional[str] = None
    state: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "balance": self.balance,
            "contract_code": self.contract_code,
            "state": dict(self.state),
        }


def _freeze(value: Any) -> Any:
    """dict → MappingProxyType, list → tuple, рекурсивно."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class BadgeRecord:
    token_id: str
    recipient: str
    metadata: Mapping[str, Any]
    status: BadgeStatus = BadgeStatus.MINTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_id": self.token_id,
            "recipient": self.recipient,
            "metadata": _thaw(self.metadata),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class _Resolution:
    """Сообщение воркеру: перевести tx_id в терминальный статус."""
    tx_id: str
    kind: str
    contract_id: Optional[str] = None


class LedgerSimulator:
    """Один экземпляр на приложение/тест; глобального синглтона нет.

    Экземпляр привязывается к event loop'у, в котором выполнен первый
    deploy/send (там живёт воркер). Если этот loop закрыт, следующий
    deploy/send перепривязывает леджер к текущему loop'у и заново ставит в
    очередь неразрешённые транзакции. Вызов из другого, ещё живого loop'а
    даёт RuntimeError.
    """

    def __init__(
        self,
        *,
        deploy_delay: Optional[float] = None,
        confirm_delay: Optional[float] = None,
        failure_rate: Optional[float] = None,
        start_block: Optional[int] = None,
        network_delay_scale: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.deploy_delay = config.DEPLOY_CONFIRM_MS / 1000 if deploy_delay is None else deploy_delay
        self.confirm_delay = config.TX_CONFIRM_MS / 1000 if confirm_delay is None else confirm_delay
        self.failure_rate = config.TX_FAILURE_RATE if failure_rate is None else failure_rate
        self.network_delay_scale = (
            config.NETWORK_DELAY_SCALE if network_delay_scale is None else network_delay_scale
        )
        self._rng = rng or random.Random(config.LEDGER_SEED)
        self._block = config.START_BLOCK if start_block is None else start_block

        # порядок вставки = порядок отправки; терминальный переход заменяет запись на месте
        self._txs: Dict[str, Transaction] = {}
        self._entities: Dict[str, Entity] = {}
        self._badges: List[BadgeRecord] = []

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._timers: Dict[str, asyncio.Handle] = {}
        # запланированные, но ещё не разрешённые воркером сообщения
        self._inflight: Dict[str, _Resolution] = {}
        self._closed = False

    # ---------- воркер ----------
    def _worker_alive(self) -> bool:
        return (
            self._worker is not None
            and not self._worker.done()
            and self._loop is not None
            and not self._loop.is_closed()
        )

    def _ensure_worker(self) -> asyncio.AbstractEventLoop:
        if self._closed:
            raise RuntimeError("ledger is closed")
        loop = asyncio.get_running_loop()
        if self._worker_alive():
            if loop is not self._loop:
                raise RuntimeError("ledger is bound to another running event loop")
            return loop

        # первый запуск или прежний loop умер вместе с воркером и таймерами
        self._loop = loop
        self._queue = asyncio.Queue()
        self._worker = loop.create_task(self._run(), name="ledger-worker")
        self._timers.clear()
        for msg in self._inflight.values():
            self._timers[msg.tx_id] = loop.call_soon(self._deliver, msg)
        if self._inflight:
            log.warning("ledger.worker_rebound", requeued=len(self._inflight))
        return loop

    def _schedule(self, msg: _Resolution, delay: float) -> None:
        loop = self._ensure_worker()
        self._inflight[msg.tx_id] = msg
        self._timers[msg.tx_id] = loop.call_later(max(0.0, delay), self._deliver, msg)

    def _deliver(self, msg: _Resolution) -> None:
        self._timers.pop(msg.tx_id, None)
        if msg.tx_id not in self._inflight:
            return
        assert self._queue is not None
        self._queue.put_nowait(msg)

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            msg = await self._queue.get()
            try:
                self._resolve(msg)
            except Exception:
                log.exception("ledger.resolve_error", tx_id=msg.tx_id)
            finally:
                self._queue.task_done()

    def _resolve(self, msg: _Resolution) -> None:
        self._inflight.pop(msg.tx_id, None)
        tx = self._txs.get(msg.tx_id)
        if tx is None or tx.terminal:
            return

        self._block += 1
        if msg.kind == KIND_DEPLOY:
            status = TxStatus.CONFIRMED
            message = f"Contract deployed successfully at {msg.contract_id}"
        elif self._rng.random() < self.failure_rate:
            status = TxStatus.FAILED
            message = "Transaction failed during execution"
        else:
            status = TxStatus.CONFIRMED
            message = f"Transaction confirmed in block {self._block}"

        self._txs[msg.tx_id] = replace(tx, status=status, block_height=self._block, message=message)
        log.info(
            "ledger.tx_resolved",
            tx_id=msg.tx_id,
            kind=msg.kind,
            status=status.value,
            block=self._block,
        )

    def _new_tx_id(self) -> str:
        tx_id = str(uuid.uuid4())
        while tx_id in self._txs:
            tx_id = str(uuid.uuid4())
        return tx_id

    def _new_entity_id(self) -> str:
        entity_id = str(uuid.uuid4())
        while entity_id in self._entities:
            entity_id = str(uuid.uuid4())
        return entity_id

    # ---------- операции ----------
    async def deploy_contract(self, code: str, constructor_args: Sequence[Any] = ()) -> Transaction:
        """Развернуть контракт: новая сущность + pending-транзакция.

        Возвращается сразу; confirmed наступает через deploy_delay секунд.
        """
        self._ensure_worker()
        contract_id = self._new_entity_id()
        tx = Transaction(
            tx_id=self._new_tx_id(),
            status=TxStatus.PENDING,
            block_height=self._block,
            gas_used=self._rng.randrange(*DEPLOY_GAS),
            message=f"Contract deployment initiated. Contract ID: {contract_id}",
            kind=KIND_DEPLOY,
        )
        self._entities[contract_id] = Entity(
            id=contract_id,
            balance=0,
            contract_code=code,
            state={
                "deployed": True,
                "deployedAt": _now_ms(),
                "constructor_args": list(constructor_args),
            },
        )
        self._txs[tx.tx_id] = tx
        self._schedule(_Resolution(tx.tx_id, KIND_DEPLOY, contract_id), self.deploy_delay)

        log.info(
            "ledger.deploy",
            contract_id=contract_id,
            tx_id=tx.tx_id,
            code_size=len(code),
            args=len(constructor_args),
        )
        return tx

    async def send_transaction(self, code: str, function_name: str, params: Sequence[Any] = ()) -> Transaction:
        """Вызов функции контракта. Исход (confirmed/failed) разыгрывается
        при разрешении, через confirm_delay секунд."""
        self._ensure_worker()
        tx = Transaction(
            tx_id=self._new_tx_id(),
            status=TxStatus.PENDING,
            block_height=self._block,
            gas_used=self._rng.randrange(*CALL_GAS),
            message=f"Transaction sent to Qubic network. Function: {function_name}",
            kind=KIND_CALL,
        )
        self._txs[tx.tx_id] = tx
        self._schedule(_Resolution(tx.tx_id, KIND_CALL), self.confirm_delay)

        log.info(
            "ledger.tx_sent",
            tx_id=tx.tx_id,
            function=function_name,
            params=len(params),
            gas_used=tx.gas_used,
            block=self._block,
            code_size=len(code),
        )
        return tx

    async def get_entity(self, entity_id: str) -> Entity:
        """Любой id - существующий аккаунт: при первом обращении сущность
        создаётся со случайным балансом и дальше возвращается та же."""
        entity = self._entities.get(entity_id)
        if entity is not None:
            return entity

        entity = Entity(
            id=entity_id,
            balance=self._rng.randrange(ENTITY_BALANCE_MAX),
            state={
                "initialized": True,
                "lastUpdated": _now_ms(),
                "version": ENTITY_VERSION,
            },
        )
        self._entities[entity_id] = entity
        log.info("ledger.entity_created", entity_id=entity_id, balance=entity.balance)
        return entity

    async def mint_sbt(self, recipient: str, badge_type: str, metadata: Optional[Mapping[str, Any]] = None) -> BadgeRecord:
        """Выпустить soulbound-бейдж. Всегда успешно; запись неизменяема
        целиком: вложенные dict/list замораживаются в MappingProxyType/tuple."""
        meta = dict(metadata or {})
        meta.update(
            badgeType=badge_type,
            mintedAt=_now_ms(),
            blockchain=CHAIN_NAME,
            soulbound=True,
        )
        badge = BadgeRecord(
            token_id=str(uuid.uuid4()),
            recipient=recipient,
            metadata=_freeze(meta),
            status=BadgeStatus.MINTED,
        )
        self._badges.append(badge)
        log.info("ledger.sbt_minted", token_id=badge.token_id, recipient=recipient, badge_type=badge_type)
        return badge

    async def simulate_network_delay(self) -> None:
        await asyncio.sleep((0.5 + self._rng.random()) * self.network_delay_scale)

    # ---------- чтение ----------
    def get_transaction_history(self) -> List[Transaction]:
        return list(self._txs.values())

    def get_transaction(self, tx_id: str) -> Optional[Transaction]:
        return self._txs.get(tx_id)

    def get_current_block(self) -> int:
        return self._block

    def get_badges(self) -> List[BadgeRecord]:
        return list(self._badges)

    def pending_count(self) -> int:
        return sum(1 for tx in self._txs.values() if not tx.terminal)

    async def aclose(self) -> None:
        """Остановить воркер (вызывается из lifespan при остановке приложения).

        Транзакции, чья задержка ещё не истекла, разрешаются досрочно:
        pending в истории после закрытия не остаётся.
        """
        self._closed = True
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        inflight = list(self._inflight.values())
        self._inflight.clear()
        if inflight and self._worker_alive() and self._loop is asyncio.get_running_loop():
            assert self._queue is not None
            for msg in inflight:
                self._queue.put_nowait(msg)
            await self._queue.join()
        else:
            # воркера нет (или его loop мёртв): разрешаем на месте
            for msg in inflight:
                self._resolve(msg)
        if self._worker is not None:
            self._worker.cancel()
            if self._worker.done() or self._loop is asyncio.get_running_loop():
                with contextlib.suppress(asyncio.CancelledError):
                    await self._worker
            self._worker = None


__all__ = [
    "TxStatus",
    "BadgeStatus",
    "Transaction",
    "Entity",
    "BadgeRecord",
    "LedgerSimulator",
]
