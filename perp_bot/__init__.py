"""
Perp trading Telegram bot.

Collects trading and withdrawal intent over multi-step chat flows, keeps
sensitive commands out of group chats and turns backend failures into
localized, actionable replies.
"""

__version__ = "1.0.0"
