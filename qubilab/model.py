"""
Модель контракта, которую заполняет билдер.

ContractSpec - то, что пользователь собрал в форме: имя, архетип,
переменные, функции и тело конструктора. Генератор кода только читает её.

Словарное представление совпадает с формой билдера:
  {"contractName", "contractType", "variables", "functions", "constructorLogic"}
  function: {"name", "parameters", "logic", "isPublic"}
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping


class Archetype(str, Enum):
    TOKEN = "Token"
    VOTING = "Voting"
    ORACLE = "Oracle"

    @classmethod
    def parse(cls, value: Any) -> "Archetype":
        """Неизвестный архетип → Token (как и выбор шаблона по умолчанию)."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value == value:
                return member
        return cls.TOKEN


@dataclass(frozen=True)
class Variable:
    """Пара {type, name}: переменная состояния или параметр функции."""
    type: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "name": self.name}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Variable":
        if not isinstance(d, Mapping):
            raise TypeError("variable must be an object {type, name}")
        return cls(type=str(d.get("type") or ""), name=str(d.get("name") or ""))


@dataclass
class FunctionSpec:
    name: str
    parameters: List[Variable] = field(default_factory=list)
    logic_tag: str = ""
    # пока влияет только на намерение, модификатор доступа не генерируется
    is_public: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "parameters": [p.to_dict() for p in self.parameters],
            "logic": self.logic_tag,
            "isPublic": self.is_public,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "FunctionSpec":
        if not isinstance(d, Mapping):
            raise TypeError("function must be an object")
        params = d.get("parameters") or []
        if not isinstance(params, list):
            raise ValueError("function.parameters must be a list")
        return cls(
            name=str(d.get("name") or ""),
            parameters=[Variable.from_dict(p) for p in params],
            logic_tag=str(d.get("logic") or ""),
            is_public=bool(d.get("isPublic", True)),
        )


@dataclass
class ContractSpec:
    name: str
    archetype: Archetype = Archetype.TOKEN
    variables: List[Variable] = field(default_factory=list)
    functions: List[FunctionSpec] = field(default_factory=list)
    constructor_body: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractName": self.name,
            "contractType": self.archetype.value,
            "variables": [v.to_dict() for v in self.variables],
            "functions": [f.to_dict() for f in self.functions],
            "constructorLogic": self.constructor_body,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ContractSpec":
        if not isinstance(d, Mapping):
            raise TypeError("spec must be an object")
        variables = d.get("variables") or []
        functions = d.get("functions") or []
        if not isinstance(variables, list):
            raise ValueError("variables must be a list")
        if not isinstance(functions, list):
            raise ValueError("functions must be a list")
        return cls(
            name=str(d.get("contractName") or ""),
            archetype=Archetype.parse(d.get("contractType")),
            variables=[Variable.from_dict(v) for v in variables],
            functions=[FunctionSpec.from_dict(f) for f in functions],
            constructor_body=str(d.get("constructorLogic") or ""),
        )


__all__ = ["Archetype", "Variable", "FunctionSpec", "ContractSpec"]
