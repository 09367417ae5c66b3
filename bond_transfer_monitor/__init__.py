"""
TokenizedBond 转账事件监控器
"""

__version__ = "1.0.0"
