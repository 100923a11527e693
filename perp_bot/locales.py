"""
Built-in message catalog.

Strings are HTML (sent with ParseMode.HTML) and use ``str.format``
placeholders. ``en`` is the reference locale; keys missing from another
locale fall back to it.
"""

EN = {
    # Buttons
    "button.confirm": "✅ Confirm",
    "button.cancel": "❌ Cancel",
    "button.max": "💰 Max",

    # /start
    "start.welcome_new": (
        "🎉 <b>Welcome, {name}!</b>\n\n"
        "Your trading account has been created.\n"
        "💼 Wallet: <code>{wallet}</code>\n\n"
        "Deposit USDC to this address on Arbitrum, then open your first trade with /long or /short.\n"
        "Type /help to see every command."
    ),
    "start.welcome_back": (
        "👋 <b>Welcome back, {name}!</b>\n\n"
        "💼 Wallet: <code>{wallet}</code>\n\n"
        "Type /help to see every command."
    ),
    "start.continuing": "🔐 Continuing <b>{command}</b> in private chat…",
    "start.link_invalid": "⚠️ This link is invalid or has expired. Send the command again here.",

    # Generic
    "command.unknown": "🤔 Unknown command {command}. Type /help to see what I can do.",

    # Help
    "help.title": "📖 <b>Commands</b>",
    "help.category.trading": "Trading",
    "help.category.market": "Market",
    "help.category.account": "Account",
    "help.category.utility": "Utility",
    "help.start": "Create or open your account",
    "help.help": "Show this list",
    "help.cancel": "Cancel the current operation",
    "help.language": "Change language",
    "help.long": "Open a long position",
    "help.short": "Open a short position",
    "help.close": "Close a position (default 100%)",
    "help.positions": "Show open positions",
    "help.wallet": "Show wallet and balance",
    "help.pnl": "Show profit and loss",
    "help.push": "Show notification settings",
    "help.withdraw": "Withdraw USDC",
    "help.price": "Show a token price",
    "help.markets": "Show the perp market overview",
    "help.invite": "Show your invitations and points",

    # Language
    "language.choose": "🌐 Choose your language:",
    "language.changed": "✅ Language set to {language}.",

    # Flow lifecycle
    "flow.name.trading_entry": "trade",
    "flow.name.withdrawal": "withdrawal",
    "flow.already_active": "⚠️ You already have a {flow} in progress. Finish it or send /cancel first.",
    "flow.busy": "⏳ Your request is already being processed.",
    "flow.processing": "⏳ Processing…",
    "flow.expired": "⌛ This operation has expired. Please start again.",
    "flow.cancelled": "❌ Operation cancelled.",
    "flow.nothing_to_cancel": "There is nothing to cancel.",
    "flow.cancel_private": "🔐 Send /cancel in our private chat to cancel an operation.",
    "flow.use_buttons": "👆 Please use the buttons above to confirm or cancel.",

    # Trading
    "trade.direction.long": "Long",
    "trade.direction.short": "Short",
    "trade.usage": (
        "<b>Usage:</b> {command} [symbol] [leverage] [amount]\n"
        "Example: <code>{command} BTC 5x 100</code>"
    ),
    "trade.ask_symbol": "📈 <b>{direction}</b>\n\nWhich token do you want to trade? Send the symbol, e.g. <code>BTC</code>.",
    "trade.choose_leverage": "📊 <b>{direction} {symbol}</b>\nCurrent price: ${price}\n\nChoose your leverage:",
    "trade.leverage_selected": "Leverage {leverage}x selected",
    "trade.available_margin": "Available margin: ${margin}",
    "trade.insufficient_margin": (
        "Not enough margin: this order needs ${required} but ${available} is available.\n"
        "At this leverage you can trade up to ${maximum}."
    ),
    "trade.ask_amount": (
        "💵 <b>{symbol}</b> at {leverage}x\n\n"
        "How much USDC do you want to use? Minimum ${minimum}."
    ),
    "trade.preview_title": "📋 <b>{direction} order preview</b>",
    "trade.preview_symbol": "Token: <b>{symbol}</b>",
    "trade.preview_leverage": "Leverage: <b>{leverage}x</b>",
    "trade.preview_amount": "Amount: <b>${amount}</b>",
    "trade.preview_price": "Price: ${price}",
    "trade.preview_size": "Size: {size}",
    "trade.preview_margin": "Margin required: ${margin}",
    "trade.preview_liquidation": "⚠️ Est. liquidation price: ${price}",
    "trade.preview_hint": "Confirm to place a market order.",
    "trade.success": (
        "✅ <b>{direction} {symbol} opened</b>\n\n"
        "Size: {size}\nLeverage: {leverage}x\nAmount: ${amount}\n\n"
        "Use /positions to follow it."
    ),

    # Close
    "close.usage": (
        "<b>Usage:</b> /close &lt;symbol&gt; [percent|amount]\n"
        "Examples: <code>/close BTC</code>, <code>/close ETH 50%</code>"
    ),
    "close.processing": "⏳ Closing {size} of your {symbol} position…",
    "close.success_full": "✅ {symbol} position closed.",
    "close.success_partial": "✅ Closed {size} of your {symbol} position.",

    # Positions / wallet / pnl / push
    "positions.empty": "📭 You have no open positions.",
    "positions.title": "📊 <b>Open positions ({count})</b>",
    "positions.item": (
        "<b>{symbol}</b> {side} · size {size}\n"
        "Entry ${entry} · Mark ${mark}\n"
        "PnL {pnl} ({pnl_pct}%)\n"
    ),
    "wallet.summary": (
        "💼 <b>Wallet</b>\n\n"
        "Address: <code>{address}</code>\n"
        "Account value: ${account_value}\n"
        "Withdrawable: ${withdrawable}"
    ),
    "pnl.title": "💹 <b>Profit and loss</b>",
    "pnl.total": "Total PnL: {pnl}",
    "pnl.trades": "Trades: {count}",
    "pnl.win_rate": "Win rate: {rate}%",
    "push.title": "🔔 <b>Notification settings</b>",
    "push.empty": "No notification settings yet.",
    "push.on": "on",
    "push.off": "off",

    # Market data / invitations
    "price.usage": "<b>Usage:</b> /price &lt;symbol&gt;\nExample: <code>/price BTC</code>",
    "price.summary": "💰 <b>{symbol}</b>\nPrice: ${price}\n24h change: {change}%",
    "markets.title": "🏪 <b>Perp markets</b>",
    "markets.item": "<b>{symbol}</b>  ${price}  {change}%",
    "invite.summary": (
        "🎁 <b>Invitations</b>\n\n"
        "Invited users: {count}\nTrading volume: ${volume}\nPoints: {points}\n\n"
        "Your invitation link:\n<code>{link}</code>\n\n"
        "Every $100 of trading volume by your invitees earns 1 point."
    ),

    # Withdraw
    "withdraw.usage": (
        "<b>Usage:</b> /withdraw [address] [amount]\n"
        "Example: <code>/withdraw 0x1234…abcd 50</code>"
    ),
    "withdraw.ask_address": "🏦 <b>Withdraw USDC</b>\n\nSend the destination address (Arbitrum, 0x…).",
    "withdraw.ask_amount": "💵 How much USDC do you want to withdraw? Minimum ${minimum}, fee ${fee}.",
    "withdraw.fetching_max": "Checking your balance…",
    "withdraw.max_too_low": "⚠️ Withdrawable balance ${balance} is below the ${minimum} minimum.",
    "withdraw.preview_title": "📋 <b>Withdrawal preview</b>",
    "withdraw.preview_amount": "Amount: <b>${amount}</b>",
    "withdraw.preview_address": "To: <code>{address}</code>",
    "withdraw.preview_network": "Network: {network}",
    "withdraw.preview_fee": "Fee: ${fee}",
    "withdraw.preview_net": "You receive: <b>${net}</b>",
    "withdraw.preview_warning": "⚠️ Check the address carefully. Withdrawals cannot be reversed.",
    "withdraw.success": (
        "✅ <b>Withdrawal submitted</b>\n\n"
        "Amount: ${amount}\nYou receive: ${net}\nTo: <code>{address}</code>"
    ),

    # Validation
    "validation.symbol_format": "Invalid token symbol. Use letters and digits only, e.g. BTC.",
    "validation.leverage_format": "Invalid leverage. Use a whole number such as 5 or 5x.",
    "validation.leverage_range": "Leverage must be between {min}x and {max}x.",
    "validation.amount_format": "Invalid amount. Send a positive number, e.g. 100.",
    "validation.amount_minimum": "The minimum amount is ${minimum}.",
    "validation.amount_exceeds_balance": "Amount exceeds your withdrawable balance of ${balance}.",
    "validation.address_length": "Address must be {expected} characters long (got {length}).",
    "validation.address_format": "Invalid address. It must start with 0x followed by 40 hex characters.",
    "validation.close_format": "Invalid close amount. Use a percentage like 50% or a positive number.",
    "validation.close_percentage": "Percentage must be above 0% and at most 100%.",

    # Group redirect
    "security.redirect_title": "🔐 <b>Private command</b>",
    "security.redirect_body": "For your security, trading and account commands only run in a private chat with me.",
    "security.redirect_cta": "Tap <b>{button}</b> below to continue privately.",
    "security.args_dropped": "ℹ️ Your parameters were too long to carry over; please enter them again.",

    # Groups
    "group.welcome": (
        "👋 Thanks for adding me!\n\n"
        "Group owners can receive trading notifications here automatically. "
        "Trading commands are handled in private chat with @{bot}."
    ),

    # Errors
    "error.token": "Token: {symbol}",
    "error.amount": "Amount: {amount}",
    "error.details": "Details: {details}",
    "error.reasons": "Possible reasons:",
    "error.suggestions": "Suggestions:",
    "error.retry_hint": "🔄 This is usually temporary. Please try again in a moment.",
    "error.contact_support": "If the problem persists, contact {contact}.",
}

ZH_CN = {
    "button.confirm": "✅ 确认",
    "button.cancel": "❌ 取消",
    "button.max": "💰 全部",

    "start.welcome_new": (
        "🎉 <b>欢迎，{name}！</b>\n\n"
        "您的交易账户已创建。\n"
        "💼 钱包：<code>{wallet}</code>\n\n"
        "请通过 Arbitrum 向此地址充值 USDC，然后使用 /long 或 /short 开始交易。\n"
        "输入 /help 查看全部命令。"
    ),
    "start.welcome_back": (
        "👋 <b>欢迎回来，{name}！</b>\n\n"
        "💼 钱包：<code>{wallet}</code>\n\n"
        "输入 /help 查看全部命令。"
    ),
    "start.continuing": "🔐 正在私聊中继续执行 <b>{command}</b>…",
    "start.link_invalid": "⚠️ 链接无效或已过期，请在此重新发送命令。",

    "command.unknown": "🤔 未知命令 {command}。输入 /help 查看可用命令。",

    "help.title": "📖 <b>命令列表</b>",
    "help.category.trading": "交易",
    "help.category.market": "行情",
    "help.category.account": "账户",
    "help.category.utility": "工具",
    "help.start": "创建或打开账户",
    "help.help": "显示此列表",
    "help.cancel": "取消当前操作",
    "help.language": "切换语言",
    "help.long": "开多仓",
    "help.short": "开空仓",
    "help.close": "平仓（默认 100%）",
    "help.positions": "查看持仓",
    "help.wallet": "查看钱包与余额",
    "help.pnl": "查看盈亏",
    "help.push": "查看推送设置",
    "help.withdraw": "提现 USDC",
    "help.price": "查询代币价格",
    "help.markets": "查看合约市场行情",
    "help.invite": "查看邀请与积分",

    "language.choose": "🌐 请选择语言：",
    "language.changed": "✅ 语言已切换为 {language}。",

    "flow.name.trading_entry": "交易",
    "flow.name.withdrawal": "提现",
    "flow.already_active": "⚠️ 您有一个进行中的{flow}操作。请先完成或发送 /cancel。",
    "flow.busy": "⏳ 您的请求正在处理中。",
    "flow.processing": "⏳ 处理中…",
    "flow.expired": "⌛ 操作已过期，请重新开始。",
    "flow.cancelled": "❌ 操作已取消。",
    "flow.nothing_to_cancel": "当前没有可取消的操作。",
    "flow.cancel_private": "🔐 请在与我的私聊中发送 /cancel 取消操作。",
    "flow.use_buttons": "👆 请使用上方按钮确认或取消。",

    "trade.direction.long": "做多",
    "trade.direction.short": "做空",
    "trade.usage": (
        "<b>用法：</b>{command} [代币] [杠杆] [金额]\n"
        "示例：<code>{command} BTC 5x 100</code>"
    ),
    "trade.ask_symbol": "📈 <b>{direction}</b>\n\n请输入要交易的代币，例如 <code>BTC</code>。",
    "trade.choose_leverage": "📊 <b>{direction} {symbol}</b>\n当前价格：${price}\n\n请选择杠杆：",
    "trade.leverage_selected": "已选择 {leverage}x 杠杆",
    "trade.available_margin": "可用保证金：${margin}",
    "trade.insufficient_margin": "保证金不足：该订单需要 ${required}，可用 ${available}。\n当前杠杆下最多可交易 ${maximum}。",
    "trade.ask_amount": "💵 <b>{symbol}</b> {leverage}x\n\n请输入使用的 USDC 金额，最低 ${minimum}。",
    "trade.preview_title": "📋 <b>{direction}订单预览</b>",
    "trade.preview_symbol": "代币：<b>{symbol}</b>",
    "trade.preview_leverage": "杠杆：<b>{leverage}x</b>",
    "trade.preview_amount": "金额：<b>${amount}</b>",
    "trade.preview_price": "价格：${price}",
    "trade.preview_size": "数量：{size}",
    "trade.preview_margin": "所需保证金：${margin}",
    "trade.preview_liquidation": "⚠️ 预估强平价：${price}",
    "trade.preview_hint": "确认后将以市价下单。",
    "trade.success": (
        "✅ <b>{direction} {symbol} 已开仓</b>\n\n"
        "数量：{size}\n杠杆：{leverage}x\n金额：${amount}\n\n"
        "使用 /positions 查看持仓。"
    ),

    "close.usage": (
        "<b>用法：</b>/close &lt;代币&gt; [百分比|数量]\n"
        "示例：<code>/close BTC</code>、<code>/close ETH 50%</code>"
    ),
    "close.processing": "⏳ 正在平掉 {symbol} 仓位的 {size}…",
    "close.success_full": "✅ {symbol} 仓位已平仓。",
    "close.success_partial": "✅ 已平掉 {symbol} 仓位的 {size}。",

    "positions.empty": "📭 您当前没有持仓。",
    "positions.title": "📊 <b>当前持仓（{count}）</b>",
    "positions.item": (
        "<b>{symbol}</b> {side} · 数量 {size}\n"
        "开仓价 ${entry} · 标记价 ${mark}\n"
        "盈亏 {pnl}（{pnl_pct}%）\n"
    ),
    "wallet.summary": (
        "💼 <b>钱包</b>\n\n"
        "地址：<code>{address}</code>\n"
        "账户价值：${account_value}\n"
        "可提现：${withdrawable}"
    ),
    "pnl.title": "💹 <b>盈亏统计</b>",
    "pnl.total": "总盈亏：{pnl}",
    "pnl.trades": "交易次数：{count}",
    "pnl.win_rate": "胜率：{rate}%",
    "push.title": "🔔 <b>推送设置</b>",
    "push.empty": "暂无推送设置。",
    "push.on": "开启",
    "push.off": "关闭",

    "price.usage": "<b>用法：</b>/price &lt;代币&gt;\n示例：<code>/price BTC</code>",
    "price.summary": "💰 <b>{symbol}</b>\n价格：${price}\n24小时涨跌：{change}%",
    "markets.title": "🏪 <b>合约市场</b>",
    "markets.item": "<b>{symbol}</b>  ${price}  {change}%",
    "invite.summary": (
        "🎁 <b>邀请统计</b>\n\n"
        "邀请人数：{count}\n交易量：${volume}\n积分：{points}\n\n"
        "您的邀请链接：\n<code>{link}</code>\n\n"
        "被邀请人每产生 $100 交易量，您获得 1 积分。"
    ),

    "withdraw.usage": (
        "<b>用法：</b>/withdraw [地址] [金额]\n"
        "示例：<code>/withdraw 0x1234…abcd 50</code>"
    ),
    "withdraw.ask_address": "🏦 <b>提现 USDC</b>\n\n请输入收款地址（Arbitrum，0x…）。",
    "withdraw.ask_amount": "💵 请输入提现金额（USDC），最低 ${minimum}，手续费 ${fee}。",
    "withdraw.fetching_max": "正在查询余额…",
    "withdraw.max_too_low": "⚠️ 可提现余额 ${balance} 低于最低提现额 ${minimum}。",
    "withdraw.preview_title": "📋 <b>提现预览</b>",
    "withdraw.preview_amount": "金额：<b>${amount}</b>",
    "withdraw.preview_address": "收款地址：<code>{address}</code>",
    "withdraw.preview_network": "网络：{network}",
    "withdraw.preview_fee": "手续费：${fee}",
    "withdraw.preview_net": "实际到账：<b>${net}</b>",
    "withdraw.preview_warning": "⚠️ 请仔细核对地址，提现无法撤回。",
    "withdraw.success": (
        "✅ <b>提现已提交</b>\n\n"
        "金额：${amount}\n实际到账：${net}\n收款地址：<code>{address}</code>"
    ),

    "validation.symbol_format": "代币符号无效，只能包含字母和数字，例如 BTC。",
    "validation.leverage_format": "杠杆无效，请输入整数，例如 5 或 5x。",
    "validation.leverage_range": "杠杆必须在 {min}x 到 {max}x 之间。",
    "validation.amount_format": "金额无效，请输入正数，例如 100。",
    "validation.amount_minimum": "最低金额为 ${minimum}。",
    "validation.amount_exceeds_balance": "金额超过可提现余额 ${balance}。",
    "validation.address_length": "地址长度必须为 {expected} 个字符（当前 {length}）。",
    "validation.address_format": "地址无效，必须以 0x 开头并包含 40 位十六进制字符。",
    "validation.close_format": "平仓数量无效，请输入百分比（如 50%）或正数。",
    "validation.close_percentage": "百分比必须大于 0% 且不超过 100%。",

    "security.redirect_title": "🔐 <b>私聊命令</b>",
    "security.redirect_body": "为了您的安全，交易和账户命令只能在与我的私聊中使用。",
    "security.redirect_cta": "点击下方 <b>{button}</b> 在私聊中继续。",
    "security.args_dropped": "ℹ️ 参数过长无法带入私聊，请重新输入。",

    "group.welcome": (
        "👋 感谢把我加入群组！\n\n"
        "群主可以在这里自动接收交易推送。交易命令请在与 @{bot} 的私聊中使用。"
    ),

    "error.token": "代币：{symbol}",
    "error.amount": "金额：{amount}",
    "error.details": "详情：{details}",
    "error.reasons": "可能原因：",
    "error.suggestions": "建议：",
    "error.retry_hint": "🔄 这通常是暂时的，请稍后重试。",
    "error.contact_support": "如问题持续，请联系 {contact}。",
}

KO = {
    "button.confirm": "✅ 확인",
    "button.cancel": "❌ 취소",
    "button.max": "💰 최대",

    "start.welcome_new": (
        "🎉 <b>환영합니다, {name}님!</b>\n\n"
        "거래 계정이 생성되었습니다.\n"
        "💼 지갑: <code>{wallet}</code>\n\n"
        "Arbitrum 네트워크로 이 주소에 USDC를 입금한 뒤 /long 또는 /short 로 거래를 시작하세요.\n"
        "/help 를 입력하면 모든 명령어를 볼 수 있습니다."
    ),
    "start.welcome_back": (
        "👋 <b>다시 오신 것을 환영합니다, {name}님!</b>\n\n"
        "💼 지갑: <code>{wallet}</code>\n\n"
        "/help 를 입력하면 모든 명령어를 볼 수 있습니다."
    ),
    "start.continuing": "🔐 개인 채팅에서 <b>{command}</b> 을(를) 계속합니다…",
    "start.link_invalid": "⚠️ 링크가 유효하지 않거나 만료되었습니다. 여기에서 명령어를 다시 보내주세요.",

    "command.unknown": "🤔 알 수 없는 명령어 {command} 입니다. /help 를 입력해 주세요.",

    "help.title": "📖 <b>명령어</b>",
    "help.category.trading": "거래",
    "help.category.market": "시세",
    "help.category.account": "계정",
    "help.category.utility": "기타",
    "help.start": "계정 생성 또는 열기",
    "help.help": "이 목록 보기",
    "help.cancel": "현재 작업 취소",
    "help.language": "언어 변경",
    "help.long": "롱 포지션 열기",
    "help.short": "숏 포지션 열기",
    "help.close": "포지션 청산 (기본 100%)",
    "help.positions": "보유 포지션 보기",
    "help.wallet": "지갑 및 잔액 보기",
    "help.pnl": "손익 보기",
    "help.push": "알림 설정 보기",
    "help.withdraw": "USDC 출금",
    "help.price": "토큰 가격 조회",
    "help.markets": "선물 시장 개요 보기",
    "help.invite": "초대 현황과 포인트 보기",

    "language.choose": "🌐 언어를 선택하세요:",
    "language.changed": "✅ 언어가 {language}(으)로 설정되었습니다.",

    "flow.name.trading_entry": "거래",
    "flow.name.withdrawal": "출금",
    "flow.already_active": "⚠️ 진행 중인 {flow} 작업이 있습니다. 먼저 완료하거나 /cancel 을 보내주세요.",
    "flow.busy": "⏳ 요청을 이미 처리하고 있습니다.",
    "flow.processing": "⏳ 처리 중…",
    "flow.expired": "⌛ 작업이 만료되었습니다. 다시 시작해 주세요.",
    "flow.cancelled": "❌ 작업이 취소되었습니다.",
    "flow.nothing_to_cancel": "취소할 작업이 없습니다.",
    "flow.cancel_private": "🔐 작업 취소는 저와의 개인 채팅에서 /cancel 을 보내주세요.",
    "flow.use_buttons": "👆 위의 버튼으로 확인 또는 취소해 주세요.",

    "trade.direction.long": "롱",
    "trade.direction.short": "숏",
    "trade.usage": (
        "<b>사용법:</b> {command} [심볼] [레버리지] [금액]\n"
        "예시: <code>{command} BTC 5x 100</code>"
    ),
    "trade.ask_symbol": "📈 <b>{direction}</b>\n\n거래할 토큰 심볼을 보내주세요. 예: <code>BTC</code>",
    "trade.choose_leverage": "📊 <b>{direction} {symbol}</b>\n현재 가격: ${price}\n\n레버리지를 선택하세요:",
    "trade.leverage_selected": "{leverage}x 레버리지 선택됨",
    "trade.available_margin": "사용 가능 증거금: ${margin}",
    "trade.insufficient_margin": "증거금 부족: 이 주문은 ${required} 이 필요하지만 ${available} 만 사용 가능합니다.\n현재 레버리지로 최대 ${maximum} 까지 거래할 수 있습니다.",
    "trade.ask_amount": "💵 <b>{symbol}</b> {leverage}x\n\n사용할 USDC 금액을 입력하세요. 최소 ${minimum}.",
    "trade.preview_title": "📋 <b>{direction} 주문 미리보기</b>",
    "trade.preview_symbol": "토큰: <b>{symbol}</b>",
    "trade.preview_leverage": "레버리지: <b>{leverage}x</b>",
    "trade.preview_amount": "금액: <b>${amount}</b>",
    "trade.preview_price": "가격: ${price}",
    "trade.preview_size": "수량: {size}",
    "trade.preview_margin": "필요 증거금: ${margin}",
    "trade.preview_liquidation": "⚠️ 예상 청산가: ${price}",
    "trade.preview_hint": "확인하면 시장가 주문이 실행됩니다.",
    "trade.success": (
        "✅ <b>{direction} {symbol} 포지션 오픈</b>\n\n"
        "수량: {size}\n레버리지: {leverage}x\n금액: ${amount}\n\n"
        "/positions 로 확인하세요."
    ),

    "close.usage": (
        "<b>사용법:</b> /close &lt;심볼&gt; [퍼센트|수량]\n"
        "예시: <code>/close BTC</code>, <code>/close ETH 50%</code>"
    ),
    "close.processing": "⏳ {symbol} 포지션의 {size} 청산 중…",
    "close.success_full": "✅ {symbol} 포지션이 청산되었습니다.",
    "close.success_partial": "✅ {symbol} 포지션의 {size} 을(를) 청산했습니다.",

    "positions.empty": "📭 보유 중인 포지션이 없습니다.",
    "positions.title": "📊 <b>보유 포지션 ({count})</b>",
    "positions.item": (
        "<b>{symbol}</b> {side} · 수량 {size}\n"
        "진입가 ${entry} · 마크가 ${mark}\n"
        "손익 {pnl} ({pnl_pct}%)\n"
    ),
    "wallet.summary": (
        "💼 <b>지갑</b>\n\n"
        "주소: <code>{address}</code>\n"
        "계정 가치: ${account_value}\n"
        "출금 가능: ${withdrawable}"
    ),
    "pnl.title": "💹 <b>손익</b>",
    "pnl.total": "총 손익: {pnl}",
    "pnl.trades": "거래 수: {count}",
    "pnl.win_rate": "승률: {rate}%",
    "push.title": "🔔 <b>알림 설정</b>",
    "push.empty": "알림 설정이 없습니다.",
    "push.on": "켜짐",
    "push.off": "꺼짐",

    "price.usage": "<b>사용법:</b> /price &lt;심볼&gt;\n예시: <code>/price BTC</code>",
    "price.summary": "💰 <b>{symbol}</b>\n가격: ${price}\n24시간 변동: {change}%",
    "markets.title": "🏪 <b>선물 시장</b>",
    "markets.item": "<b>{symbol}</b>  ${price}  {change}%",
    "invite.summary": (
        "🎁 <b>초대 현황</b>\n\n"
        "초대한 사용자: {count}\n거래량: ${volume}\n포인트: {points}\n\n"
        "내 초대 링크:\n<code>{link}</code>\n\n"
        "초대한 사용자의 거래량 $100 마다 1 포인트가 적립됩니다."
    ),

    "withdraw.usage": (
        "<b>사용법:</b> /withdraw [주소] [금액]\n"
        "예시: <code>/withdraw 0x1234…abcd 50</code>"
    ),
    "withdraw.ask_address": "🏦 <b>USDC 출금</b>\n\n받을 주소를 보내주세요 (Arbitrum, 0x…).",
    "withdraw.ask_amount": "💵 출금할 USDC 금액을 입력하세요. 최소 ${minimum}, 수수료 ${fee}.",
    "withdraw.fetching_max": "잔액 확인 중…",
    "withdraw.max_too_low": "⚠️ 출금 가능 잔액 ${balance} 이(가) 최소 금액 ${minimum} 보다 적습니다.",
    "withdraw.preview_title": "📋 <b>출금 미리보기</b>",
    "withdraw.preview_amount": "금액: <b>${amount}</b>",
    "withdraw.preview_address": "받는 주소: <code>{address}</code>",
    "withdraw.preview_network": "네트워크: {network}",
    "withdraw.preview_fee": "수수료: ${fee}",
    "withdraw.preview_net": "수령액: <b>${net}</b>",
    "withdraw.preview_warning": "⚠️ 주소를 꼭 확인하세요. 출금은 취소할 수 없습니다.",
    "withdraw.success": (
        "✅ <b>출금 요청 완료</b>\n\n"
        "금액: ${amount}\n수령액: ${net}\n받는 주소: <code>{address}</code>"
    ),

    "validation.symbol_format": "잘못된 토큰 심볼입니다. 영문과 숫자만 사용하세요. 예: BTC",
    "validation.leverage_format": "잘못된 레버리지입니다. 5 또는 5x 처럼 정수를 입력하세요.",
    "validation.leverage_range": "레버리지는 {min}x 에서 {max}x 사이여야 합니다.",
    "validation.amount_format": "잘못된 금액입니다. 양수를 입력하세요. 예: 100",
    "validation.amount_minimum": "최소 금액은 ${minimum} 입니다.",
    "validation.amount_exceeds_balance": "출금 가능 잔액 ${balance} 을(를) 초과했습니다.",
    "validation.address_length": "주소는 {expected}자여야 합니다 (현재 {length}자).",
    "validation.address_format": "잘못된 주소입니다. 0x 와 40자리 16진수로 이루어져야 합니다.",
    "validation.close_format": "잘못된 청산 수량입니다. 50% 같은 퍼센트나 양수를 입력하세요.",
    "validation.close_percentage": "퍼센트는 0% 초과 100% 이하여야 합니다.",

    "security.redirect_title": "🔐 <b>개인 채팅 명령어</b>",
    "security.redirect_body": "보안을 위해 거래 및 계정 명령어는 저와의 개인 채팅에서만 사용할 수 있습니다.",
    "security.redirect_cta": "아래 <b>{button}</b> 버튼을 눌러 개인 채팅에서 계속하세요.",
    "security.args_dropped": "ℹ️ 입력값이 너무 길어 전달되지 않았습니다. 다시 입력해 주세요.",

    "group.welcome": (
        "👋 그룹에 초대해 주셔서 감사합니다!\n\n"
        "그룹 소유자는 이곳에서 거래 알림을 자동으로 받을 수 있습니다. "
        "거래 명령어는 @{bot} 과의 개인 채팅에서 사용하세요."
    ),

    "error.token": "토큰: {symbol}",
    "error.amount": "금액: {amount}",
    "error.details": "상세: {details}",
    "error.reasons": "가능한 원인:",
    "error.suggestions": "해결 방법:",
    "error.retry_hint": "🔄 일시적인 문제일 수 있습니다. 잠시 후 다시 시도해 주세요.",
    "error.contact_support": "문제가 계속되면 {contact} 에 문의하세요.",
}

CATALOG = {
    "en": EN,
    "zh-CN": ZH_CN,
    "ko": KO,
}
