"""
Simulation Errors

模拟流程中所有致命错误的统一分类。任何一个错误都会终止整个流程。
"""

from typing import Optional


class SimulationError(Exception):
    """模拟流程错误基类"""


class ConnectivityError(SimulationError):
    """RPC 端点不可达或返回格式错误"""


class ForkStartupError(SimulationError):
    """本地分叉节点启动或状态复制失败"""

    def __init__(self, message: str, stderr: Optional[str] = None):
        if stderr:
            message = f"{message}\n--- anvil stderr ---\n{stderr}"
        super().__init__(message)
        self.stderr = stderr


class SigningError(SimulationError):
    """私钥格式无效"""


class EncodingError(SimulationError):
    """调用参数与 ABI 签名不匹配"""


class CallRevertedError(SimulationError):
    """只读调用被合约逻辑拒绝"""

    def __init__(self, function_name: str, reason: Optional[str] = None):
        self.function_name = function_name
        self.reason = reason
        super().__init__(f"调用 {function_name} 被回滚: {reason or '未知原因'}")


class SubmissionError(SimulationError):
    """写交易被节点拒绝（余额不足、gas 不足、执行回滚）"""


class TraceUnavailableError(SimulationError):
    """节点不支持 trace 调用，或交易哈希未知"""
