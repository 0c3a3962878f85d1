"""QubiLab: генератор Qubic-контрактов и симулятор леджера."""
from .codegen import synthesize, synthesize_from_archetype
from .ledger import LedgerSimulator
from .model import Archetype, ContractSpec, FunctionSpec, Variable

__version__ = "0.1.0"

__all__ = [
    "Archetype",
    "ContractSpec",
    "FunctionSpec",
    "Variable",
    "LedgerSimulator",
    "synthesize",
    "synthesize_from_archetype",
]
