"""
RPC调用管理器

负责Web3连接管理、区块号缓存和调用统计
"""

import time
from collections import defaultdict
from typing import Dict, Any, List, Optional

from web3 import AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from bond_transfer_monitor.config.monitor_config import MonitorConfig
from bond_transfer_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class RPCManager:
    """RPC调用管理器 - 负责缓存和调用统计"""

    def __init__(self, config: MonitorConfig, w3: Optional[AsyncWeb3] = None):
        self.config = config
        if w3 is None:
            w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self.w3 = w3

        # 缓存相关
        self.cached_block_number: Optional[int] = None
        self.cache_time: float = 0

        # 统计相关
        self.rpc_calls: int = 0
        self.rpc_errors: int = 0
        self.rpc_calls_by_type: Dict[str, int] = defaultdict(int)
        self.start_time: float = time.time()

    def log_rpc_call(self, call_type: str = 'other') -> None:
        """记录RPC调用统计"""
        self.rpc_calls += 1
        self.rpc_calls_by_type[call_type] += 1

    async def get_cached_block_number(self) -> int:
        """获取缓存的区块号"""
        current_time = time.time()

        if (self.cached_block_number is None or
                current_time - self.cache_time > self.config.cache_ttl):
            self.cached_block_number = await self.w3.eth.get_block_number()
            self.cache_time = current_time
            self.log_rpc_call('get_block_number')

        return self.cached_block_number

    async def get_logs(self, from_block: int, to_block: int, topics: List[str]) -> List[Any]:
        """
        获取合约在区块区间内的日志

        Args:
            from_block: 起始区块（含）
            to_block: 结束区块（含）
            topics: topic0 候选列表（任一匹配）

        Returns:
            日志列表
        """
        self.log_rpc_call('get_logs')
        try:
            return await self.w3.eth.get_logs({
                'address': AsyncWeb3.to_checksum_address(self.config.contract_address),
                'fromBlock': from_block,
                'toBlock': to_block,
                'topics': [topics],
            })
        except Exception:
            self.rpc_errors += 1
            raise

    async def test_connection(self) -> Dict[str, Any]:
        """测试网络连接并返回基本信息"""
        logger.info(f"正在测试RPC {self.config.rpc_url} 连接...")
        try:
            latest_block = await self.get_cached_block_number()
            chain_id = await self.w3.eth.chain_id
            self.log_rpc_call('chain_id')

            return {
                'success': True,
                'latest_block': latest_block,
                'chain_id': chain_id,
                'network': self.config.chain_name,
                'rpc_url': self.config.rpc_url
            }
        except Exception as e:
            return {
                'success': False,
                'error': str(e),
                'rpc_url': self.config.rpc_url
            }

    def get_stats(self) -> Dict[str, Any]:
        """获取调用统计信息"""
        runtime = time.time() - self.start_time
        return {
            'rpc_calls': self.rpc_calls,
            'rpc_errors': self.rpc_errors,
            'avg_rpc_per_second': self.rpc_calls / runtime if runtime > 0 else 0,
            'rpc_calls_by_type': dict(self.rpc_calls_by_type),
        }

