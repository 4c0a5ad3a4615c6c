"""Read-only reports: the current price list and a player's game history."""
import logging
from typing import Dict, List

from ledger import Ledger, GameRecord

logger = logging.getLogger(__name__)

NO_EVENT = "暂无赛事信息"
NO_HISTORY = "没有找到历史记录。"
UNDERLINE = "—" * 12


def format_record(record: GameRecord) -> str:
    status = "正在进行中" if record.is_active else "已结束"
    return (
        f"{record.created_at:%Y-%m-%d %H:%M:%S}(使用{record.star_cost}星卷)\n"
        f"{record.game_id}--{record.stars}星[{record.final_rank}]${status}"
    )


def format_history(records: List[GameRecord]) -> str:
    """Render game records grouped by order type with per-group totals.

    Groups appear in the order their first record appears.
    """
    if not records:
        return NO_HISTORY

    groups: Dict[str, List[GameRecord]] = {}
    for record in records:
        groups.setdefault(record.order_type, []).append(record)

    lines = []
    for order_type, group in groups.items():
        total_cost = sum(record.star_cost for record in group)
        total_stars = sum(record.stars for record in group)
        lines.append(f"{order_type}:")
        lines.append(f"♥♥总使用星卷: {total_cost}♥♥")
        lines.append(f"🚗🚗总摘星: {total_stars}🚗🚗")
        for record in group:
            lines.append(format_record(record))
            lines.append(UNDERLINE)
        lines.append("")

    return "\n".join(lines) + "\n"


class Reports:
    """Report generator over the ledger's report tables."""

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    async def price_list(self) -> str:
        event_text = await self.ledger.get_current_event()
        if not event_text:
            logger.info("No current event found")
            return NO_EVENT
        return event_text

    async def history(self, nickname: str) -> str:
        records = await self.ledger.get_game_history(nickname)
        logger.debug(f"Found {len(records)} history records for {nickname}")
        return format_history(records)


__all__ = ['Reports', 'format_history', 'NO_EVENT', 'NO_HISTORY']
