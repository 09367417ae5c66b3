"""
合约事件订阅器

EventSubscriber: 进程内事件通道，按事件名注册处理函数并按顺序投递事件
Web3EventSubscriber: 通过 RPC 轮询合约日志，解码后投递给已注册的处理函数
"""

import asyncio
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional

from web3 import AsyncWeb3

from bond_transfer_monitor.config.monitor_config import MonitorConfig
from bond_transfer_monitor.managers.rpc_manager import RPCManager
from bond_transfer_monitor.models.bond_abi import BOND_EVENTS_ABI, EVENT_SIGNATURES
from bond_transfer_monitor.models.data_types import ContractEvent
from bond_transfer_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[ContractEvent], Awaitable[None]]


class EventSubscriber:
    """进程内事件通道 - 事件按投递顺序逐个交给处理函数"""

    def __init__(self):
        self.handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self.is_running = False
        self.events_dispatched = 0

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """注册事件处理函数"""
        self.handlers[event_name].append(handler)
        logger.debug(f"已订阅事件 {event_name}")

    @property
    def event_names(self) -> List[str]:
        return list(self.handlers.keys())

    async def start(self) -> None:
        """开始接收事件"""
        self.is_running = True

    def stop(self) -> None:
        """停止接收事件"""
        self.is_running = False

    async def dispatch(self, event: ContractEvent) -> None:
        """
        把事件投递给该事件名下的所有处理函数

        处理函数抛出的异常会被记录，不影响后续事件的投递
        """
        handlers = self.handlers.get(event.name, [])
        if not handlers:
            logger.debug(f"事件 {event.name} 没有处理函数，忽略")
            return

        self.events_dispatched += 1
        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(f"处理事件 {event} 失败: {e}", exc_info=True)


class Web3EventSubscriber(EventSubscriber):
    """基于 get_logs 轮询的合约事件订阅器"""

    def __init__(self, config: MonitorConfig, rpc_manager: Optional[RPCManager] = None):
        super().__init__()
        self.config = config
        self.rpc_manager = rpc_manager or RPCManager(config)
        self.contract = self.rpc_manager.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(config.contract_address),
            abi=BOND_EVENTS_ABI,
        )
        # topic0 -> 事件名
        self.topic_to_event: Dict[str, str] = {
            AsyncWeb3.to_hex(AsyncWeb3.keccak(text=signature)): name
            for name, signature in EVENT_SIGNATURES.items()
        }
        self.last_block = 0
        self._task: Optional[asyncio.Task] = None

    def _subscribed_topics(self) -> List[str]:
        return [topic for topic, name in self.topic_to_event.items() if name in self.handlers]

    async def start(self) -> None:
        """从当前最新区块开始轮询（不回溯历史事件）"""
        if self.is_running:
            return

        self.last_block = await self.rpc_manager.get_cached_block_number()
        self.is_running = True
        self._task = asyncio.create_task(self._polling_loop())
        logger.info(f"📡 事件轮询已启动，起始区块: {self.last_block}")

    def stop(self) -> None:
        """停止轮询"""
        if not self.is_running:
            return

        self.is_running = False
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None
        logger.info("事件轮询已停止")

    async def _polling_loop(self) -> None:
        """主轮询循环"""
        while self.is_running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"轮询合约日志失败: {e}", exc_info=True)

            await asyncio.sleep(self.config.poll_interval)

    async def poll_once(self) -> int:
        """
        拉取 last_block 之后的新日志并投递

        Returns:
            int: 本次投递的事件数量
        """
        current_block = await self.rpc_manager.get_cached_block_number()
        topics = self._subscribed_topics()
        dispatched = 0

        while self.is_running and self.last_block < current_block:
            from_block = self.last_block + 1
            to_block = min(current_block, from_block + self.config.max_block_range - 1)

            logs = await self.rpc_manager.get_logs(from_block, to_block, topics)
            for log in sorted(logs, key=lambda item: (item['blockNumber'], item['logIndex'])):
                event = self.decode_log(log)
                if event:
                    await self.dispatch(event)
                    dispatched += 1

            # 区间处理完成后才推进，失败时下次轮询重试该区间
            self.last_block = to_block

        return dispatched

    def decode_log(self, log: Any) -> Optional[ContractEvent]:
        """按 ABI 解码日志"""
        if not log['topics']:
            return None

        event_name = self.topic_to_event.get(AsyncWeb3.to_hex(log['topics'][0]))
        if not event_name:
            return None

        try:
            decoded = getattr(self.contract.events, event_name)().process_log(log)
        except Exception as e:
            logger.warning(f"⚠️ 解码 {event_name} 日志失败: {e}")
            return None

        return ContractEvent(
            name=event_name,
            args=dict(decoded['args']),
            transaction_hash=AsyncWeb3.to_hex(decoded['transactionHash']),
            block_number=int(decoded['blockNumber']),
            log_index=int(decoded['logIndex']),
        )
