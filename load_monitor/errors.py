"""
错误类型定义

核心层只抛出以下异常，由 API 层映射为 HTTP 状态码。
"""


class LoadMonitorError(Exception):
    """所有核心错误的基类"""


class InvalidInputError(LoadMonitorError, ValueError):
    """非法输入：空服务器名、非有限数值、窗口长度不能被桶宽整除等"""


class NotFoundError(LoadMonitorError, LookupError):
    """查询的服务器从未上报过样本"""

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"No server information found for '{entity}'.")
