"""
Load Monitor - 服务器负载滚动平均服务

负责：
- 接收各服务器上报的 CPU / 内存负载样本
- 按服务器维护内存中的样本历史（按时间排序，自动过期）
- 按分钟（最近 1 小时）和按小时（最近 24 小时）计算分桶平均值
- 提供 REST API
"""

__version__ = "1.0.0"
__author__ = "AI-B"
