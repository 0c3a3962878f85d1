"""Параметры симулятора (читаются из окружения один раз при импорте)."""
from __future__ import annotations

import os
from typing import Any, Dict, Optional


# --- задержки подтверждения ---
DEPLOY_CONFIRM_MS = max(0, int(os.getenv("DEPLOY_CONFIRM_MS", "3000")))
# через сколько мс deploy переходит в confirmed (по умолчанию 3000)

TX_CONFIRM_MS = max(0, int(os.getenv("TX_CONFIRM_MS", "2000")))
# через сколько мс обычная транзакция получает терминальный статус (по умолчанию 2000)

# --- исход транзакций ---
TX_FAILURE_RATE = min(1.0, max(0.0, float(os.getenv("TX_FAILURE_RATE", "0.1"))))
# доля неуспешных send-транзакций; deploy всегда успешен

START_BLOCK = max(0, int(os.getenv("START_BLOCK", "1000")))
# стартовая «высота» счётчика блоков

NETWORK_DELAY_SCALE = max(0.0, float(os.getenv("NETWORK_DELAY_SCALE", "1.0")))
# множитель для simulate_network_delay (0 - без задержки)

_seed = os.getenv("LEDGER_SEED", "").strip()
LEDGER_SEED: Optional[int] = int(_seed) if _seed else None
# фиксированный seed для RNG леджера (для воспроизводимых демо)


def snapshot() -> Dict[str, Any]:
    return {
        "DEPLOY_CONFIRM_MS": DEPLOY_CONFIRM_MS,
        "TX_CONFIRM_MS": TX_CONFIRM_MS,
        "TX_FAILURE_RATE": TX_FAILURE_RATE,
        "START_BLOCK": START_BLOCK,
        "NETWORK_DELAY_SCALE": NETWORK_DELAY_SCALE,
        "LEDGER_SEED": LEDGER_SEED,
    }
