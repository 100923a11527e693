"""
Backend account/trading API client.

Thin async wrapper over the bot backend's REST API:
- User initialization (issues the access token used by every other call)
- Opening and closing positions
- Positions, PnL and balance queries
- Withdrawals
- Token price lookup for symbol validation and order sizing

Every failure surfaces as ApiError: HTTP errors carry their status and
the backend's message, transport failures carry no status.

Usage:
    from perp_bot.api_client import BackendClient

    async with BackendClient("https://api.example.com") as client:
        user = await client.init_user(telegram_id="42")
        await client.withdraw(user.access_token, 50.0, "0x...")
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

from perp_bot.errors.exceptions import ApiError

logger = logging.getLogger(__name__)

# Retry transport failures, rate limits and server errors
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})

SYMBOL_ALIASES = {
    "BTC": "WBTC",
    "BITCOIN": "WBTC",
    "ETHEREUM": "ETH",
    "SOLANA": "SOL",
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class UserInit:
    """Result of user initialization."""
    user_id: int
    wallet_address: str
    access_token: str
    is_new_user: bool = False
    nickname: str = ""
    referral_code: str = ""


@dataclass
class Balance:
    """Trading account balance in USDC."""
    account_value: float
    withdrawable: float


@dataclass
class Position:
    symbol: str
    side: str
    size: float
    entry_price: float
    mark_price: float
    pnl: float
    pnl_percentage: float = 0.0
    margin_used: float = 0.0


@dataclass
class PnlSummary:
    total_pnl: float
    total_trades: int
    win_rate: Optional[float] = None


@dataclass
class TokenQuote:
    symbol: str
    price: float
    change_24h: float = 0.0


@dataclass
class InviteStats:
    """Referral summary; points accrue at 1 per $100 of invitee volume."""
    invitee_count: int
    trading_volume: float
    points: float
    invitation_link: str = ""
    referral_code: str = ""


@dataclass
class OrderResult:
    """Backend acknowledgement of a submitted order or withdrawal."""
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# =============================================================================
# Client
# =============================================================================

class BackendClient:
    """
    Async client for the bot backend.

    Args:
        base_url: API root, e.g. ``https://api.example.com``
        timeout: Total request timeout in seconds
        max_retries: Extra attempts for retryable failures
        retry_delay: Base delay; attempt N waits ``retry_delay * N``
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 1.0,
    ):
        if not base_url:
            raise ValueError("Backend base URL is required. Set API_BASE_URL.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._session: Optional[aiohttp.ClientSession] = None

    # =========================================================================
    # Session Management
    # =========================================================================

    async def connect(self) -> None:
        """Create HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "BackendClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        retry: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Only GETs are retried unless ``retry`` says otherwise; order and
        withdrawal POSTs must never be sent twice.

        Raises:
            ApiError: on HTTP errors, non-200 ``code`` bodies or transport failures
        """
        attempt = 0
        while True:
            try:
                return await self._request_once(method, path, token, json_body, params)
            except ApiError as e:
                retryable = e.status is None or e.status in RETRYABLE_STATUSES
                allowed = (method.upper() == "GET") if retry is None else retry
                if not (retryable and allowed) or attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = self.retry_delay * attempt
                logger.warning(
                    f"Retrying {method} {path} ({attempt}/{self.max_retries}) in {delay:.1f}s: {e.message}"
                )
                await asyncio.sleep(delay)

    async def _request_once(
        self,
        method: str,
        path: str,
        token: Optional[str],
        json_body: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        if self._session is None or self._session.closed:
            await self.connect()

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url}{path}"
        started = time.monotonic()
        try:
            async with self._session.request(
                method, url, headers=headers, json=json_body, params=params
            ) as resp:
                text = await resp.text()
                status = resp.status
        except asyncio.TimeoutError as e:
            raise ApiError(f"Request timeout after {self.timeout}s: {method} {path}", code="NETWORK_ERROR") from e
        except aiohttp.ClientError as e:
            raise ApiError(f"Network connection failed: {e}", code="NETWORK_ERROR") from e

        logger.debug(f"API {method} {path} -> {status} in {(time.monotonic() - started) * 1000:.0f}ms")
        return self._handle_response(status, text)

    @staticmethod
    def _handle_response(status: int, text: str) -> Dict[str, Any]:
        """Decode a response body or raise ApiError."""
        try:
            body = json.loads(text) if text else {}
        except json.JSONDecodeError:
            body = {"message": text[:200]}

        if not isinstance(body, dict):
            body = {"data": body}

        message = body.get("message") or body.get("error") or ""
        if isinstance(message, dict):
            message = message.get("message", "")

        if status >= 400:
            raise ApiError(str(message) or f"Request failed ({status})", status=status, code=str(status), payload=body)

        # Backend reports business errors with HTTP 200 and a non-200 code
        code = body.get("code")
        if isinstance(code, int) and code != 200:
            http_like = code if 400 <= code <= 599 else 400
            raise ApiError(str(message) or f"Request failed (code {code})", status=http_like, code=str(code), payload=body)

        return body

    # =========================================================================
    # User
    # =========================================================================

    async def init_user(
        self,
        telegram_id: str,
        username: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        invitation_code: Optional[str] = None,
    ) -> UserInit:
        """Create or fetch the backend user and issue an access token."""
        payload = {"telegram_id": str(telegram_id)}
        for key, value in (
            ("username", username),
            ("first_name", first_name),
            ("last_name", last_name),
            ("invitation_code", invitation_code),
        ):
            if value:
                payload[key] = value

        body = await self.request("POST", "/api/tgbot/user/init", json_body=payload, retry=True)
        data = body.get("data") or {}
        if not isinstance(data.get("accessToken"), str) or "userId" not in data:
            raise ApiError("User init response missing required fields", payload=body)

        return UserInit(
            user_id=int(data["userId"]),
            wallet_address=data.get("walletAddress", ""),
            access_token=data["accessToken"],
            is_new_user=bool(data.get("isNewUser", False)),
            nickname=data.get("nickname", ""),
            referral_code=data.get("referralCode", ""),
        )

    # =========================================================================
    # Trading
    # =========================================================================

    async def open_position(
        self,
        token: str,
        direction: str,
        symbol: str,
        leverage: int,
        size: float,
    ) -> OrderResult:
        """Submit a market order. ``direction`` is ``long`` or ``short``."""
        if direction not in ("long", "short"):
            raise ValueError(f"Unknown direction: {direction}")

        body = await self.request(
            "POST",
            f"/api/tgbot/trading/{direction}",
            token=token,
            json_body={
                "symbol": symbol.upper(),
                "leverage": int(leverage),
                "size": size,
                "orderType": "market",
            },
        )
        return OrderResult(message=body.get("message", ""), data=body.get("data") or {})

    async def close_position(self, token: str, user_id: int, symbol: str, percentage: str) -> OrderResult:
        """Close all or part of a position; ``percentage`` is ``"50%"`` or an amount string."""
        body = await self.request(
            "POST",
            "/api/tgbot/trading/close",
            token=token,
            json_body={
                "userId": user_id,
                "symbol": symbol.upper(),
                "percentage": percentage,
                "orderType": "market",
            },
        )
        return OrderResult(message=body.get("message", ""), data=body.get("data") or {})

    async def get_positions(self, token: str) -> List[Position]:
        body = await self.request("GET", "/api/tgbot/trading/positions", token=token)
        data = body.get("data") or {}
        raw_positions = data.get("positions", []) if isinstance(data, dict) else data

        positions = []
        for item in raw_positions or []:
            positions.append(Position(
                symbol=str(item.get("symbol", "")).upper(),
                side=str(item.get("side", "")),
                size=_to_float(item.get("size")),
                entry_price=_to_float(item.get("entryPrice")),
                mark_price=_to_float(item.get("markPrice")),
                pnl=_to_float(item.get("pnl")),
                pnl_percentage=_to_float(item.get("pnlPercentage")),
                margin_used=_to_float(item.get("marginUsed")),
            ))
        return positions

    async def get_pnl(self, token: str) -> PnlSummary:
        body = await self.request("GET", "/api/tgbot/trading/pnl", token=token)
        data = body.get("data") or {}
        stats = data.get("statistics") or {}
        return PnlSummary(
            total_pnl=_to_float(stats.get("totalPnl", data.get("totalPnl"))),
            total_trades=int(data.get("totalTrades") or len(data.get("trades") or [])),
            win_rate=_to_float(stats["winRate"]) if "winRate" in stats else None,
        )

    # =========================================================================
    # Account
    # =========================================================================

    async def get_balance(self, token: str, telegram_id: str) -> Balance:
        """Trading account value and withdrawable amount."""
        body = await self.request(
            "POST",
            "/api/hyperliquid/getUserState",
            token=token,
            json_body={"type": 1, "telegram_id": str(telegram_id)},
            retry=True,
        )
        data = body.get("data") or {}
        # Some deployments wrap the state one level deeper
        if isinstance(data.get("data"), dict):
            data = data["data"]

        summary = data.get("marginSummary") or {}
        return Balance(
            account_value=_to_float(summary.get("accountValue")),
            withdrawable=_to_float(data.get("withdrawable", data.get("withdrawableAmount"))),
        )

    async def withdraw(self, token: str, amount: float, destination: str) -> OrderResult:
        body = await self.request(
            "POST",
            "/api/tgbot/withdraw",
            token=token,
            json_body={"amount": amount, "destination": destination},
        )
        return OrderResult(message=body.get("message", ""), data=body.get("data") or {})

    async def get_push_settings(self, token: str) -> Dict[str, Any]:
        body = await self.request("GET", "/api/tgbot/push/content", token=token)
        data = body.get("data") or {}
        return data.get("user_settings") or {}

    async def bind_group_push(self, token: str, group_id: str, group_name: Optional[str] = None) -> Dict[str, Any]:
        """Route the user's push notifications to a group they own."""
        body = await self.request(
            "POST",
            "/api/user/push-settings",
            token=token,
            json_body={"group_action": "bind", "group_id": str(group_id), "group_name": group_name},
            retry=True,
        )
        return body.get("data") or {}

    # =========================================================================
    # Referrals
    # =========================================================================

    async def get_invite_stats(self, token: str, page: int = 1, page_size: int = 20) -> InviteStats:
        body = await self.request(
            "GET",
            "/api/reward/inviteRecord",
            token=token,
            params={"page": page, "pageSize": page_size},
        )
        data = body.get("data") or {}
        volume = _to_float(data.get("totalTradingVolume"))
        return InviteStats(
            invitee_count=int(_to_float(data.get("totalRecords"))),
            trading_volume=volume,
            points=math.floor(volume) / 100 if volume > 0 else 0.0,
            invitation_link=str(data.get("invitationLink") or ""),
            referral_code=str(data.get("referralCode") or ""),
        )

    # =========================================================================
    # Market Data
    # =========================================================================

    async def get_token_price(self, symbol: str) -> TokenQuote:
        """
        Current price for ``symbol``.

        Raises:
            ApiError: status 400 "invalid symbol" if the token is not listed
        """
        normalized = symbol.upper().strip()
        search = SYMBOL_ALIASES.get(normalized, normalized)

        body = await self.request("GET", "/api/birdeye/token_trending")
        tokens = body.get("data")
        if isinstance(tokens, dict):
            tokens = tokens.get("tokens") or tokens.get("items")
        if not isinstance(tokens, list):
            raise ApiError("Invalid token list response", payload=body)

        for token in tokens:
            if str(token.get("symbol", "")).upper() in (search, normalized):
                price = _to_float(token.get("price"))
                if price <= 0:
                    break
                return TokenQuote(
                    symbol=normalized,
                    price=price,
                    change_24h=_to_float(token.get("price24hChangePercent", token.get("change24h"))),
                )

        raise ApiError(f"Invalid symbol: {normalized} not found", status=400, code="INVALID_SYMBOL")

    async def get_markets(self) -> List[TokenQuote]:
        """Perp market overview, in the order the backend ranks it."""
        body = await self.request("GET", "/api/home/getLargeMarketData")
        items = body.get("data")
        if not isinstance(items, list):
            raise ApiError("Invalid market data response", payload=body)

        markets = []
        for item in items:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            markets.append(TokenQuote(
                symbol=str(item["name"]),
                price=_to_float(item.get("price")),
                change_24h=_to_float(item.get("change")),
            ))
        if not markets:
            raise ApiError("No market data available", payload=body)
        return markets


__all__ = [
    "Balance",
    "BackendClient",
    "InviteStats",
    "OrderResult",
    "PnlSummary",
    "Position",
    "TokenQuote",
    "UserInit",
]
