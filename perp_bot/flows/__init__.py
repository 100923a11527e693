"""Multi-step conversational flows."""

from perp_bot.flows.base import FlowOrchestrator
from perp_bot.flows.trading import TradingFlow
from perp_bot.flows.withdraw import WithdrawFlow

__all__ = ["FlowOrchestrator", "TradingFlow", "WithdrawFlow"]
