"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
便于回合路由器与服务层统一捕获并转成结构化结果。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_WRITE_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 thread_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """与 Provider 通信时的网络层错误（DNS、连接、超时）。"""


class ApiError(BusinessError):
    """Provider 返回了 429 以外的非 2xx 状态。"""


class RateLimitError(BusinessError):
    """Provider 限流，不做自动重试。"""


class ValidationError(BusinessError):
    """请求参数或配置不合法。"""


class ModelInvocationError(BusinessError):
    """语言模型无法给出决策或回答。"""

    def __init__(self, code: str, message: str, http_status: int = 502, **extra):
        super().__init__(code, message, http_status, **extra)


class RetrievalError(BusinessError):
    """向量库查询失败，调用方降级为无上下文。"""


class PersistenceError(BusinessError):
    """对话存储写入或删除失败，事务已回滚。"""

    def __init__(self, code: str, message: str, http_status: int = 500, **extra):
        super().__init__(code, message, http_status, **extra)


class TurnTimeoutError(BusinessError):
    """回合执行超过配置的超时时间。"""

    def __init__(self, code: str, message: str, http_status: int = 504, **extra):
        super().__init__(code, message, http_status, **extra)


class TurnAbortedError(BusinessError):
    """服务层在回合失败、没有结果时抛出。"""

    def __init__(self, code: str, message: str, http_status: int = 500, **extra):
        super().__init__(code, message, http_status, **extra)
