"""
Tests for error rendering and reporting.

Covers:
- Every error kind has a template
- Context lines, retry hint and support line
- ErrorReporter falls back to a fixed message when rendering fails
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from perp_bot.errors import (
    ERROR_TEMPLATES,
    FALLBACK_MESSAGE,
    ApiError,
    ErrorContext,
    ErrorKind,
    ErrorRenderer,
    ErrorReporter,
)


@pytest.fixture
def renderer(translator):
    return ErrorRenderer(translator, support_contact="@perp_support")


# =============================================================================
# Templates
# =============================================================================

class TestTemplates:
    """Closed template mapping."""

    def test_every_kind_has_template(self):
        assert set(ERROR_TEMPLATES) == set(ErrorKind)

    @pytest.mark.parametrize("kind", list(ErrorKind))
    def test_template_shape(self, kind):
        """Two to four reasons and suggestions per template."""
        template = ERROR_TEMPLATES[kind]
        assert template.title
        assert template.description
        assert 2 <= len(template.reasons) <= 4
        assert 2 <= len(template.suggestions) <= 4


# =============================================================================
# Rendering
# =============================================================================

class TestRenderer:
    """Rendering a kind with context."""

    def test_context_lines_before_reasons(self, renderer):
        rendered = renderer.render(
            ErrorKind.INSUFFICIENT_FUNDS,
            ErrorContext(symbol="btc", amount="$100.00", command="/long"),
        )
        html = rendered.to_html()

        assert "Token: BTC" in html
        assert "Amount: $100.00" in html
        assert html.index("Token: BTC") < html.index("Possible reasons:")

    def test_context_is_escaped(self, renderer):
        rendered = renderer.render(ErrorKind.FORMAT_ERROR, ErrorContext(details="<b>x</b>"))
        assert "&lt;b&gt;x&lt;/b&gt;" in rendered.to_html()

    def test_retry_hint_only_when_retryable(self, renderer):
        assert renderer.render(ErrorKind.SERVER_ERROR, retryable=True).retry_hint
        assert renderer.render(ErrorKind.SERVER_ERROR, retryable=False).retry_hint is None

    def test_retry_hint_can_be_forced(self, renderer):
        assert renderer.render(ErrorKind.NOT_FOUND, force_retry_hint=True).retry_hint

    def test_support_line_for_system_faults(self, renderer):
        rendered = renderer.render(ErrorKind.SERVER_ERROR, retryable=True)
        assert rendered.support_line is not None
        assert "@perp_support" in rendered.to_html()

    def test_no_support_line_for_user_faults(self, renderer):
        rendered = renderer.render(ErrorKind.INSUFFICIENT_FUNDS)
        assert rendered.support_line is None
        assert "@perp_support" not in rendered.to_html()

    def test_framing_is_localized(self, renderer):
        rendered = renderer.render(ErrorKind.SERVER_ERROR, locale="zh-CN", retryable=True)
        assert rendered.reasons_label == "可能原因："
        assert "请稍后重试" in rendered.retry_hint


# =============================================================================
# Reporter
# =============================================================================

class TestReporter:
    """ErrorReporter classifies, renders and replies."""

    @pytest.mark.asyncio
    async def test_report_sends_rendered_message(self, reporter):
        reply = AsyncMock()
        classification = await reporter.report(
            ApiError("Insufficient balance", status=400), reply, "en", ErrorContext(symbol="ETH")
        )

        assert classification.kind == ErrorKind.INSUFFICIENT_FUNDS
        text = reply.await_args.args[0]
        assert "Insufficient account balance" in text
        assert "Token: ETH" in text

    @pytest.mark.asyncio
    async def test_raw_upstream_text_not_shown(self, reporter):
        """System faults never leak the backend message."""
        reply = AsyncMock()
        await reporter.report(ApiError("pq: relation users does not exist", status=500), reply)

        assert "relation users" not in reply.await_args.args[0]

    @pytest.mark.asyncio
    async def test_fallback_when_rendering_fails(self):
        renderer = MagicMock()
        renderer.render_classification.side_effect = RuntimeError("template broken")
        reporter = ErrorReporter(renderer)
        reply = AsyncMock()

        classification = await reporter.report(ApiError("down", status=503), reply)

        assert classification.kind == ErrorKind.SERVER_ERROR
        reply.assert_awaited_once_with(FALLBACK_MESSAGE)

    @pytest.mark.asyncio
    async def test_fallback_send_failure_is_logged_not_raised(self):
        renderer = MagicMock()
        renderer.render_classification.side_effect = RuntimeError("template broken")
        reporter = ErrorReporter(renderer)
        reply = AsyncMock(side_effect=RuntimeError("telegram down"))

        await reporter.report(ValueError("x"), reply)

        assert reply.await_count == 1
