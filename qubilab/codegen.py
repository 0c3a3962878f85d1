"""
Генератор исходного кода Qubic-контрактов (C++ диалект, qpi.h).

Два режима:
  synthesize(spec)                          - сборка из переменных/функций билдера;
  synthesize_from_archetype(archetype, name) - готовый рабочий пример
                                              (Token / Voting / Oracle).

Оба - чистые функции: без I/O, времени и случайности; одинаковый вход
даёт побайтово одинаковый выход.
"""
from __future__ import annotations

from string import Template
from typing import List, Union

from .blocks import resolve
from .logging import get_logger
from .model import Archetype, ContractSpec, FunctionSpec

log = get_logger(__name__)

DEFAULT_CLASS = "MyContract"
DEFAULT_EXPORT = "CONTRACT"

MODE_COMPOSE = "compose"
MODE_ARCHETYPE = "archetype"

PREAMBLE = """\
#include <qpi.h>
#include <map>
#include <vector>
#include <string>

using namespace std;"""

PROPOSAL_STRUCT = """\
struct Proposal {
    string title;
    string description;
    uint64_t deadline;
    uint64_t yesVotes;
    uint64_t noVotes;
    bool active;
    PublicKey creator;
};"""

PRICE_DATA_STRUCT = """\
struct PriceData {
    uint64_t price;
    uint64_t timestamp;
    bool valid;
};"""

_EXTRA_TYPES = {
    Archetype.TOKEN: "",
    Archetype.VOTING: PROPOSAL_STRUCT,
    Archetype.ORACLE: PRICE_DATA_STRUCT,
}

IND = "    "


def _indent(text: str, level: int) -> str:
    pad = IND * level
    return "\n".join(pad + line if line else line for line in text.split("\n"))


def _signature(func: FunctionSpec, return_type: str) -> str:
    params = ", ".join(f"const {p.type}& {p.name}" for p in func.parameters)
    return f"{return_type} {func.name}({params})"


def _method(func: FunctionSpec) -> str:
    block = resolve(func)
    return "\n".join([
        f"{IND}{_signature(func, block.return_type_for(func))} {{",
        _indent(block.render(func), 2),
        f"{IND}}}",
    ])


def synthesize(spec: ContractSpec) -> str:
    """ContractSpec → исходный текст контракта. Никогда не бросает исключений
    на корректно типизированной спецификации: неизвестный тег даёт заглушку."""
    cls = spec.name or DEFAULT_CLASS
    export = spec.name.upper() if spec.name else DEFAULT_EXPORT

    parts: List[str] = [PREAMBLE]
    archetype = Archetype.parse(spec.archetype)
    extra = _EXTRA_TYPES[archetype]
    if extra:
        parts.append(extra)

    body: List[str] = [f"class {cls} {{", "private:"]
    body.extend(f"{IND}{v.type} {v.name};" for v in spec.variables)
    body.append("")
    body.append("public:")
    # конструктор генерируется всегда, тело вставляется как есть
    if spec.constructor_body:
        body.append(f"{IND}{cls}() {{\n{IND * 2}{spec.constructor_body}\n{IND}}}")
    else:
        body.append(f"{IND}{cls}() {{\n{IND}}}")
    for func in spec.functions:
        body.append("")
        body.append(_method(func))
    body.append("};")
    parts.append("\n".join(body))

    parts.append(f"// Export the contract for Qubic runtime\n{export}_EXPORT({cls});")

    code = "\n\n".join(parts) + "\n"
    log.debug(
        "codegen.synthesize",
        contract=cls,
        archetype=archetype.value,
        variables=len(spec.variables),
        functions=len(spec.functions),
        size=len(code),
    )
    return code


# ---------- готовые шаблоны архетипов ----------

TOKEN_TEMPLATE = Template("""\
#include <qpi.h>

class $name {
private:
    uint64_t totalSupply;
    map<PublicKey, uint64_t> balances;

public:
    $name(uint64_t _totalSupply) : totalSupply(_totalSupply) {
        balances[getOrigin()] = _totalSupply;
    }

    uint64_t balanceOf(const PublicKey& account) const {
        auto it = balances.find(account);
        return it != balances.end() ? it->second : 0;
    }

    bool transfer(const PublicKey& to, uint64_t amount) {
        PublicKey from = getOrigin();
        if (balances[from] < amount) {
            return false;
        }
        balances[from] -= amount;
        balances[to] += amount;
        return true;
    }

    uint64_t getTotalSupply() const {
        return totalSupply;
    }
};

TOKEN_EXPORT($name);
""")

VOTING_TEMPLATE = Template("""\
#include <qpi.h>

$proposal

class $name {
private:
    vector<Proposal> proposals;
    map<uint32_t, map<PublicKey, bool>> hasVoted;

public:
    uint32_t createProposal(const string& title, const string& description, uint64_t duration) {
        Proposal proposal;
        proposal.title = title;
        proposal.description = description;
        proposal.deadline = getCurrentTick() + duration;
        proposal.yesVotes = 0;
        proposal.noVotes = 0;
        proposal.active = true;
        proposal.creator = getOrigin();
        proposals.push_back(proposal);
        return proposals.size() - 1;
    }

    bool vote(uint32_t proposalId, bool support) {
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
        return true;
    }

    Proposal getProposal(uint32_t proposalId) const {
        if (proposalId < proposals.size()) {
            return proposals[proposalId];
        }
        return Proposal();
    }
};

VOTING_EXPORT($name);
""")

ORACLE_TEMPLATE = Template("""\
#include <qpi.h>

$price_data

class $name {
private:
    map<string, PriceData> prices;
    PublicKey oracleOperator;

public:
    $name(const PublicKey& _operator) : oracleOperator(_operator) {}

    bool updatePrice(const string& symbol, uint64_t price) {
        if (getOrigin() != oracleOperator) {
            return false;
        }
        PriceData data;
        data.price = price;
        data.timestamp = getCurrentTick();
        data.valid = true;
        prices[symbol] = data;
        return true;
    }

    PriceData getPrice(const string& symbol) const {
        auto it = prices.find(symbol);
        if (it != prices.end()) {
            return it->second;
        }
        return PriceData{0, 0, false};
    }

    bool isPriceValid(const string& symbol, uint64_t maxAge) const {
        auto it = prices.find(symbol);
        if (it != prices.end()) {
            uint64_t age = getCurrentTick() - it->second.timestamp;
            return it->second.valid && age <= maxAge;
        }
        return false;
    }
};

ORACLE_EXPORT($name);
""")

_TEMPLATES = {
    Archetype.TOKEN: TOKEN_TEMPLATE,
    Archetype.VOTING: VOTING_TEMPLATE,
    Archetype.ORACLE: ORACLE_TEMPLATE,
}


def synthesize_from_archetype(archetype: Union[Archetype, str], name: str) -> str:
    """Готовый пример для архетипа; неизвестный архетип → Token."""
    kind = Archetype.parse(archetype)
    return _TEMPLATES[kind].substitute(
        name=name or DEFAULT_CLASS,
        proposal=PROPOSAL_STRUCT,
        price_data=PRICE_DATA_STRUCT,
    )


def synthesize_contract(spec: ContractSpec, mode: str = MODE_COMPOSE) -> str:
    if mode == MODE_ARCHETYPE:
        return synthesize_from_archetype(spec.archetype, spec.name)
    if mode == MODE_COMPOSE:
        return synthesize(spec)
    raise ValueError(f"unknown synthesis mode: {mode!r}")


__all__ = [
    "MODE_COMPOSE",
    "MODE_ARCHETYPE",
    "synthesize",
    "synthesize_from_archetype",
    "synthesize_contract",
]
