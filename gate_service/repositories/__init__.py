# =======================================================================================
# gate_service/repositories/__init__.py - Repositories Package
# =======================================================================================
from .base import GateRepository
from .sql import SqlGateRepository
from .memory import InMemoryGateRepository, InMemoryStore

__all__ = ["GateRepository", "SqlGateRepository", "InMemoryGateRepository", "InMemoryStore"]
