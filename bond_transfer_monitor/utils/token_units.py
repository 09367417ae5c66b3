"""
代币数量换算

把链上最小单位的整数换算为人类可读的十进制字符串
"""

from decimal import Decimal, localcontext
from typing import Union

from web3 import Web3

# web3 支持的单位名称，按小数位数索引
_UNIT_BY_DECIMALS = {18: 'ether', 9: 'gwei', 6: 'mwei', 3: 'kwei', 0: 'wei'}


def _strip_zeros(amount: Decimal) -> str:
    """去掉多余的零，并避免科学计数法：Decimal('10.000') -> '10'"""
    if amount == 0:
        return "0"
    return format(amount.normalize(), 'f')


def format_units(value: Union[int, str], decimals: int = 18) -> str:
    """
    将最小单位数量换算为十进制字符串（精确换算，不做舍入）

    Args:
        value: 最小单位的数量（uint256）
        decimals: 代币精度

    Returns:
        str: 换算后的数量，如 10 * 10**18 -> "10"
    """
    raw = int(value)
    unit = _UNIT_BY_DECIMALS.get(decimals)

    # 默认 28 位有效数字不足以表示 uint256，按位数放宽精度
    with localcontext() as ctx:
        ctx.prec = len(str(abs(raw))) + decimals + 1
        if unit is not None:
            amount = Decimal(Web3.from_wei(raw, unit))
        else:
            amount = Decimal(raw).scaleb(-decimals)
        return _strip_zeros(amount)


def format_ether(value: Union[int, str]) -> str:
    """18 位精度的快捷方式"""
    return format_units(value, 18)
