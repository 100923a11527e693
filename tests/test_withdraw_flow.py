"""
Tests for the /withdraw flow.

Covers:
- Address and amount validation keep the current step
- Preview with fee and net amount
- Single withdrawal call on confirm
- Max button reading the withdrawable balance
"""

import pytest

from conftest import USER_ID, VALID_ADDRESS, sent_texts
from perp_bot.api_client import Balance
from perp_bot.errors import ApiError
from perp_bot.flows import WithdrawFlow
from perp_bot.flows.withdraw import CONFIRM_CALLBACK, MAX_CALLBACK, short_address
from perp_bot.state_machine import Step


@pytest.fixture
def flow(store, mock_client, tokens, reporter):
    return WithdrawFlow(store, mock_client, tokens, reporter)


async def _at_amount(flow, make_request):
    await flow.start_command(make_request(text=f"/withdraw {VALID_ADDRESS}", command="/withdraw", args=[VALID_ADDRESS]))


# =============================================================================
# Guided withdrawal
# =============================================================================

class TestWithdrawal:
    """Step-by-step withdrawal."""

    @pytest.mark.asyncio
    async def test_full_guided_withdrawal(self, flow, store, make_request, mock_context, mock_client):
        await flow.start_command(make_request(text="/withdraw", command="/withdraw"))
        assert store.get(USER_ID).step == Step.ADDRESS

        # One character short
        await flow.on_text(make_request(text=VALID_ADDRESS[:-1]), store.get(USER_ID))
        assert store.get(USER_ID).step == Step.ADDRESS
        assert "42 characters long (got 41)" in sent_texts(mock_context)[-1]

        await flow.on_text(make_request(text=VALID_ADDRESS), store.get(USER_ID))
        assert store.get(USER_ID).step == Step.AMOUNT
        assert store.get(USER_ID).fields["address"] == VALID_ADDRESS

        await flow.on_text(make_request(text="5"), store.get(USER_ID))
        assert store.get(USER_ID).step == Step.AMOUNT

        await flow.on_text(make_request(text="50"), store.get(USER_ID))
        assert store.get(USER_ID).step == Step.CONFIRM
        preview = sent_texts(mock_context)[-1]
        assert "$50.00" in preview
        assert "49.00" in preview
        assert VALID_ADDRESS in preview

        await flow.on_callback(make_request(callback_data=CONFIRM_CALLBACK))

        mock_client.withdraw.assert_awaited_once_with("tok-1", 50.0, VALID_ADDRESS)
        assert store.get(USER_ID) is None
        success = sent_texts(mock_context)[-1]
        assert "Withdrawal submitted" in success
        assert short_address(VALID_ADDRESS) in success

    @pytest.mark.asyncio
    async def test_bad_hex_address(self, flow, store, make_request, mock_context):
        await flow.start_command(make_request(text="/withdraw", command="/withdraw"))

        await flow.on_text(make_request(text="0x" + "z" * 40), store.get(USER_ID))

        assert store.get(USER_ID).step == Step.ADDRESS
        assert "40 hex characters" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_one_shot_arguments(self, flow, store, make_request, mock_context):
        await flow.start_command(
            make_request(text=f"/withdraw {VALID_ADDRESS} 20", command="/withdraw", args=[VALID_ADDRESS, "20"])
        )

        assert store.get(USER_ID).step == Step.CONFIRM
        assert "19.00" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_invalid_argument_starts_nothing(self, flow, store, make_request, mock_context):
        await flow.start_command(make_request(text="/withdraw 0x12", command="/withdraw", args=["0x12"]))

        assert store.get(USER_ID) is None
        assert "Usage" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_text_at_confirm_points_to_buttons(self, flow, store, make_request, mock_context):
        await flow.start_command(
            make_request(text=f"/withdraw {VALID_ADDRESS} 20", command="/withdraw", args=[VALID_ADDRESS, "20"])
        )

        await flow.on_text(make_request(text="yes"), store.get(USER_ID))

        assert "use the buttons" in sent_texts(mock_context)[-1]
        assert store.get(USER_ID).step == Step.CONFIRM

    @pytest.mark.asyncio
    async def test_failed_withdrawal_ends_flow(self, flow, store, make_request, mock_context, mock_client):
        await flow.start_command(
            make_request(text=f"/withdraw {VALID_ADDRESS} 20", command="/withdraw", args=[VALID_ADDRESS, "20"])
        )
        mock_client.withdraw.side_effect = ApiError("Insufficient balance", status=400)

        await flow.on_callback(make_request(callback_data=CONFIRM_CALLBACK))

        assert store.get(USER_ID) is None
        assert "Amount: 20.00 USDC" in sent_texts(mock_context)[-1]


# =============================================================================
# Max button
# =============================================================================

class TestMaxButton:
    """Withdrawing the full balance."""

    @pytest.mark.asyncio
    async def test_max_fills_withdrawable(self, flow, store, make_request, mock_context, mock_client):
        await _at_amount(flow, make_request)

        await flow.on_callback(make_request(callback_data=MAX_CALLBACK))

        mock_client.get_balance.assert_awaited_once_with("tok-1", str(USER_ID))
        state = store.get(USER_ID)
        assert state.step == Step.CONFIRM
        assert str(state.fields["amount"]) == "80.00"
        assert "79.00" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_max_below_minimum(self, flow, store, make_request, mock_context, mock_client):
        mock_client.get_balance.return_value = Balance(account_value=9.0, withdrawable=9.999)
        await _at_amount(flow, make_request)

        await flow.on_callback(make_request(callback_data=MAX_CALLBACK))

        assert store.get(USER_ID).step == Step.AMOUNT
        assert "$9.99" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_typed_amount_checked_after_low_max(self, flow, store, make_request, mock_context, mock_client):
        """A balance fetched by Max bounds the amount typed afterwards."""
        mock_client.get_balance.return_value = Balance(account_value=9.0, withdrawable=9.999)
        await _at_amount(flow, make_request)
        await flow.on_callback(make_request(callback_data=MAX_CALLBACK))

        await flow.on_text(make_request(text="50"), store.get(USER_ID))

        assert store.get(USER_ID).step == Step.AMOUNT
        assert "exceeds your withdrawable balance" in sent_texts(mock_context)[-1]
        mock_client.withdraw.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_max_balance_failure(self, flow, store, make_request, mock_context, mock_client):
        mock_client.get_balance.side_effect = ApiError("Gateway timeout", status=504)
        await _at_amount(flow, make_request)

        await flow.on_callback(make_request(callback_data=MAX_CALLBACK))

        assert store.get(USER_ID).step == Step.AMOUNT
        assert "try again" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_max_without_session(self, flow, make_request, mock_client):
        req = make_request(callback_data=MAX_CALLBACK)

        await flow.on_callback(req)

        mock_client.get_balance.assert_not_awaited()
        assert req.callback_query.answer.await_args.kwargs["show_alert"] is True
