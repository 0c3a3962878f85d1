"""
Каталог логических блоков: готовые тела функций для билдера.

Каждый тег (строка из выпадающего списка формы) соответствует
LogicBlock'у с телом функции и типом возврата. Неизвестные теги
(в т.ч. "Custom logic") разрешаются в LogicTag.UNKNOWN - заглушку с TODO,
а не в ошибку.

Тела пишутся без отступа; отступ метода добавляет генератор.
Параметрозависимые тела - string.Template с полями:
  $fn      имя функции
  $checks  "a == 0 || b == 0"
  $args    ", a, b"
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from string import Template
from typing import Dict, List

from .model import FunctionSpec


class LogicTag(str, Enum):
    TRANSFER = "Transfer tokens between accounts"
    CHECK_BALANCE = "Check balance of account"
    MINT = "Mint new tokens"
    BURN = "Burn existing tokens"
    CREATE_PROPOSAL = "Create new proposal"
    CAST_VOTE = "Cast vote on proposal"
    UPDATE_ORACLE = "Update oracle data"
    VALIDATE_INPUT = "Validate input parameters"
    EMIT_EVENT = "Emit event notification"
    UNKNOWN = "?"

    @classmethod
    def parse(cls, text: str) -> "LogicTag":
        """Точное совпадение со строкой каталога, иначе UNKNOWN."""
        for tag in cls:
            if tag is not cls.UNKNOWN and tag.value == text:
                return tag
        return cls.UNKNOWN


U64 = "uint64_t"
U32 = "uint32_t"
BOOL = "bool"


@dataclass(frozen=True)
class LogicBlock:
    tag: LogicTag
    body_template: str
    return_type: str = BOOL

    def return_type_for(self, func: FunctionSpec) -> str:
        # тип возврата зависит только от тега, параметры не учитываются
        return self.return_type

    def render(self, func: FunctionSpec) -> str:
        names = [p.name for p in func.parameters]
        return Template(self.body_template).substitute(
            fn=func.name,
            checks=" || ".join(f"{n} == 0" for n in names),
            args="".join(f", {n}" for n in names),
        )


_TRANSFER = """\
PublicKey from = getOrigin();
if (balances[from] < amount) {
    return false;
}
balances[from] -= amount;
balances[to] += amount;
return true;"""

_CHECK_BALANCE = """\
auto it = balances.find(account);
return it != balances.end() ? it->second : 0;"""

_MINT = """\
balances[to] += amount;
totalSupply += amount;
return true;"""

_BURN = """\
PublicKey from = getOrigin();
if (balances[from] < amount) {
    return false;
}
balances[from] -= amount;
totalSupply -= amount;
return true;"""

_CREATE_PROPOSAL = """\
Proposal proposal;
proposal.title = title;
proposal.description = description;
proposal.deadline = getCurrentTick() + duration;
proposal.yesVotes = 0;
proposal.noVotes = 0;
proposal.active = true;
proposal.creator = getOrigin();
proposals.push_back(proposal);
return proposals.size() - 1;"""

_CAST_VOTE = """\
if (proposalId >= proposals.size()) {
    return false;
}
Proposal& proposal = proposals[proposalId];
PublicKey voter = getOrigin();
if (!proposal.active || hasVoted[proposalId][voter]) {
    return false;
}
hasVoted[proposalId][voter] = true;
if (support) {
    proposal.yesVotes++;
} else {
    proposal.noVotes++;
}
return true;"""

_UPDATE_ORACLE = """\
if (getOrigin() != oracleOperator) {
    return false;
}
PriceData data;
data.price = price;
data.timestamp = getCurrentTick();
data.valid = true;
prices[symbol] = data;
return true;"""

_VALIDATE_INPUT = """\
if ($checks) {
    return false;
}
return true;"""

_EMIT_EVENT = """\
// Emit event (implementation depends on Qubic event system)
emit("$fn"$args);"""

STUB = """\
// Custom logic implementation
// TODO: Implement $fn logic
return true;"""


CATALOGUE: Dict[LogicTag, LogicBlock] = {
    b.tag: b
    for b in (
        LogicBlock(LogicTag.TRANSFER, _TRANSFER),
        LogicBlock(LogicTag.CHECK_BALANCE, _CHECK_BALANCE, U64),
        LogicBlock(LogicTag.MINT, _MINT),
        LogicBlock(LogicTag.BURN, _BURN),
        LogicBlock(LogicTag.CREATE_PROPOSAL, _CREATE_PROPOSAL, U32),
        LogicBlock(LogicTag.CAST_VOTE, _CAST_VOTE),
        LogicBlock(LogicTag.UPDATE_ORACLE, _UPDATE_ORACLE),
        LogicBlock(LogicTag.VALIDATE_INPUT, _VALIDATE_INPUT),
        LogicBlock(LogicTag.EMIT_EVENT, _EMIT_EVENT),
    )
}

UNKNOWN_BLOCK = LogicBlock(LogicTag.UNKNOWN, STUB)


def resolve(func: FunctionSpec) -> LogicBlock:
    block = CATALOGUE.get(LogicTag.parse(func.logic_tag), UNKNOWN_BLOCK)
    # без параметров условие "if ()" было бы невалидным
    if block.tag is LogicTag.VALIDATE_INPUT and not func.parameters:
        return LogicBlock(LogicTag.VALIDATE_INPUT, "return true;")
    return block


def tags() -> List[str]:
    return [t.value for t in CATALOGUE]


__all__ = ["LogicTag", "LogicBlock", "CATALOGUE", "UNKNOWN_BLOCK", "resolve", "tags"]
