"""
自然大乱斗 - 回合制双人对战服务
"""

__version__ = "1.0.0"
