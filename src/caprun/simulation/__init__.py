from .balance import BalanceReport, BalanceSimulator
from .replay import ReplayHarness
from .runtime import RunRuntime, RuntimePaths

__all__ = ["BalanceReport", "BalanceSimulator", "ReplayHarness", "RunRuntime", "RuntimePaths"]
