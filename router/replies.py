"""Reply texts sent back to the chat."""
from decimal import Decimal
from typing import List

from ledger import TradeItem

HELP_TEXT = """命令指南:
    - "帮助": 显示此帮助信息。
    - "交易，名称，价格[，数量][，描述]": 创建一个新的交易品。数量和描述为可选项。
    - "我的交易品": 查询你创建的交易品列表。
    - "交易区": 浏览当前可用的交易品列表。
    - "交易区：[]": 浏览当前[指定名字]可用的交易品列表。
    - "交易[交易ID]号": 交易[指定ID]号的交易品
    - "开始交易[交易ID]号，名称：[名称]，价格：[价格]，描述：[描述]": 在群聊中启动一个交易。请确保交易ID正确。
    - "兑换码：[充值码]": 使用兑换码完成充值交易支付。

    请根据指令格式发送消息，确保信息的正确性。"""

SYSTEM_BUSY = "系统繁忙，请稍后重试。"
PENDING_IMAGE_NOT_FOUND = "未找到待添加图片的交易品。"
COPY_CODE_HINT = "请复制上面这句话发送到微信群中获取星卷。"
RECHARGE_NOT_FOUND = "未找到对应金额的充值码，或已被使用。"
NO_ITEMS_FOR_SELLER = "您当前没有交易品。"
NO_ITEMS_AVAILABLE = "当前没有可用的交易品。"
ITEM_NOT_FOUND = "未找到指定的交易品。"
SCAN_TO_JOIN = "扫描上面二维码进群，复制上面的话到群中进行下一步交易"
TRADE_STARTED = "现在开始交易，请买家扫描下方二维码联系微信转账，进行下一步指示"
BIND_FAILED = "交易绑定失败，请重试。"
SEND_IMAGE_FAILED = "发送图片失败，请稍后再试。"
ZONE_SEPARATOR = "————交易区————"


def image_attached(item: TradeItem, is_group: bool) -> str:
    if is_group:
        return f"交易品{item.name}的图片已更新，请耐心等待用户购买，输入”我的交易品“可以查看"
    return f"交易品{item.name}的图片已更新，等待买家进群"


def redemption_code(code: str) -> str:
    return f"兑换码：{code}"


def recharge_code(code: str) -> str:
    return f"兑换码：{code}，{COPY_CODE_HINT}"


def transfer_received(amount: Decimal) -> str:
    return f"用户已转账 {amount:.2f} 元，请进行下一步交易。"


def item_created(name: str) -> str:
    return f"交易品{name}创建完成！请创建新群聊并且将二维码发到此微信以便于进行交易"


def create_failed(reason) -> str:
    return f"创建交易品失败：{reason}"


def seller_item(item: TradeItem) -> str:
    return (
        f"交易品ID：{item.id}，名称：{item.name}，价格：{item.price:.2f}，"
        f"描述：{item.description}，数量：{item.quantity}，已售出：{item.sold_count}"
    )


def trade_zone(items: List[TradeItem]) -> str:
    lines = [ZONE_SEPARATOR]
    lines.extend(
        f"{item.id}号---{item.name}（{item.description}），价：{item.price:.2f}"
        for item in items
    )
    lines.append(ZONE_SEPARATOR)
    return "\n".join(lines)


def trade_item(item: TradeItem) -> str:
    # Same wording as the StartTrade command so buyers can paste it into the group
    return f"开始交易{item.id}号，名称：{item.name}，价格：{item.price:.2f}，描述：{item.description}"


def trade_started_private(price: Decimal, name: str) -> str:
    return f"您的交易开始，请您转账{price}元购买{name}，将返回下一步提示"


def redeem_failed(reason) -> str:
    return f"处理兑换码出错: {reason}"
