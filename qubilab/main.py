"""
Учебная песочница Qubic-контрактов на Python + FastAPI.

Две части:

Генератор кода: структура контракта из билдера (имя, архетип, переменные,
функции с логическими блоками, тело конструктора) превращается в исходник
на C++-диалекте Qubic. Есть и «известно рабочие» шаблоны для архетипов
Token / Voting / Oracle.

Симулятор леджера: принимает сгенерированный код как транзакции,
ведёт их по жизненному циклу pending → confirmed | failed, хранит сущности
(аккаунты/контракты) и выпускает soulbound-бейджи (SBT) за достижения.

Install & run:
  pip install -e ".[test]"
  fastapi dev qubilab/main.py
Test:
  pytest

API:
  GET  /health | /config | /logic-blocks | /block
  POST /synthesize {"spec": {...builder form...}, "mode": "compose"|"archetype"}
  POST /deploy     {"code": "...", "args": [...]}
  POST /send       {"code": "...", "function": "initialize", "params": [...]}
  GET  /transactions | /transactions/{tx_id}
  GET  /entity/{entity_id}
  POST /sbt        {"recipient": "...", "badge_type": "course", "metadata": {...}}
  GET  /sbt

Notes:
- deploy/send возвращают транзакцию сразу, в статусе pending. Итог смотрим
  опросом /transactions/{tx_id}: уведомлений нет.
- deploy всегда подтверждается; send падает с вероятностью TX_FAILURE_RATE.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict

import orjson
from fastapi import FastAPI, HTTPException
from fastapi.responses import ORJSONResponse

from . import config
from .blocks import CATALOGUE
from .codegen import MODE_ARCHETYPE, MODE_COMPOSE, synthesize_contract
from .ledger import LedgerSimulator
from .logging import get_logger, setup_logging
from .model import ContractSpec

log = get_logger(__name__)


def _require_str(req: Dict[str, Any], key: str) -> str:
    val = req.get(key)
    if not isinstance(val, str) or not val.strip():
        raise HTTPException(status_code=400, detail=f"missing or empty '{key}'")
    return val


def _optional_list(req: Dict[str, Any], key: str) -> list:
    val = req.get(key)
    if val is None:
        return []
    if not isinstance(val, list):
        raise HTTPException(status_code=400, detail=f"'{key}' must be a list")
    return val


def _json_safe(val: Any, key: str) -> Any:
    # то, что попадёт в леджер, должно потом сериализоваться в ответах
    try:
        orjson.dumps(val)
    except orjson.JSONEncodeError as e:
        raise HTTPException(status_code=400, detail=f"'{key}' is not serializable: {e}")
    return val


def build_app(**ledger_opts: Any) -> FastAPI:
    """Фабрика приложения. ledger_opts передаются в LedgerSimulator
    (deploy_delay, confirm_delay, failure_rate, start_block, rng, ...)."""
    state: Dict[str, Any] = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        # свой леджер на каждый запуск приложения
        state["ledger"] = LedgerSimulator(**ledger_opts)
        log.info("app.start", **config.snapshot())
        yield
        await state["ledger"].aclose()
        log.info("app.stop")

    app = FastAPI(
        title="QubiLab - contract builder & ledger simulator",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    def _ledger() -> LedgerSimulator:
        return state["ledger"]

    @app.get("/health", response_model=dict)
    async def health() -> dict:
        return {"ok": True}

    @app.get("/config", response_model=dict)
    async def get_config() -> dict:
        return config.snapshot()

    @app.get("/logic-blocks", response_model=dict)
    async def get_logic_blocks() -> dict:
        return {
            "blocks": [
                {"tag": tag.value, "return_type": block.return_type}
                for tag, block in CATALOGUE.items()
            ]
        }

    # ---------- генератор ----------
    @app.post("/synthesize", response_model=dict)
    async def post_synthesize(req: Dict[str, Any]) -> dict:
        mode = req.get("mode", MODE_COMPOSE)
        if mode not in (MODE_COMPOSE, MODE_ARCHETYPE):
            raise HTTPException(status_code=400, detail=f"unknown mode: {mode}")
        try:
            spec = ContractSpec.from_dict(req.get("spec") or {})
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=f"invalid spec: {e}")
        return {"code": synthesize_contract(spec, mode), "mode": mode}

    # ---------- леджер ----------
    @app.post("/deploy", response_model=dict)
    async def post_deploy(req: Dict[str, Any]) -> dict:
        code = _require_str(req, "code")
        args = _json_safe(_optional_list(req, "args"), "args")
        tx = await _ledger().deploy_contract(code, args)
        return tx.to_dict()

    @app.post("/send", response_model=dict)
    async def post_send(req: Dict[str, Any]) -> dict:
        code = _require_str(req, "code")
        function = _require_str(req, "function")
        params = _optional_list(req, "params")
        tx = await _ledger().send_transaction(code, function, params)
        return tx.to_dict()

    @app.get("/transactions", response_model=dict)
    async def get_transactions() -> dict:
        ledger = _ledger()
        return {
            "transactions": [tx.to_dict() for tx in ledger.get_transaction_history()],
            "block": ledger.get_current_block(),
        }

    @app.get("/transactions/{tx_id}", response_model=dict)
    async def get_transaction(tx_id: str) -> dict:
        tx = _ledger().get_transaction(tx_id)
        if tx is None:
            raise HTTPException(status_code=404, detail="unknown transaction")
        return tx.to_dict()

    @app.get("/entity/{entity_id}", response_model=dict)
    async def get_entity(entity_id: str) -> dict:
        entity = await _ledger().get_entity(entity_id)
        return entity.to_dict()

    @app.get("/block", response_model=dict)
    async def get_block() -> dict:
        return {"block": _ledger().get_current_block()}

    # ---------- SBT ----------
    @app.post("/sbt", response_model=dict)
    async def post_sbt(req: Dict[str, Any]) -> dict:
        recipient = _require_str(req, "recipient")
        badge_type = _require_str(req, "badge_type")
        metadata = req.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise HTTPException(status_code=400, detail="'metadata' must be an object")
        _json_safe(metadata, "metadata")
        badge = await _ledger().mint_sbt(recipient, badge_type, metadata)
        return badge.to_dict()

    @app.get("/sbt", response_model=dict)
    async def get_sbt() -> dict:
        return {"badges": [b.to_dict() for b in _ledger().get_badges()]}

    return app

# для fastapi dev qubilab/main.py
app = build_app()
