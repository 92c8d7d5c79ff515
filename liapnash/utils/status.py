"""
协作式取消令牌
所有求解循环只在安全点（尝试之间、外层迭代开始时）轮询该标志
"""

import threading
import logging

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    可从外部线程设置、由求解器读取并复位的取消标志
    
    基于threading.Event，读/写/复位均为原子操作，
    因此可以在并行求解子博弈时共享同一个令牌。
    """
    
    def __init__(self):
        self._event = threading.Event()
        
    def set(self):
        """请求提前终止"""
        self._event.set()
        logger.info("收到取消请求")
        
    def is_set(self) -> bool:
        return self._event.is_set()
        
    def reset(self):
        """复位，避免取消状态延续到之后无关的求解调用"""
        self._event.clear()
        
    def observe(self) -> bool:
        """
        读取并复位
        
        Returns:
            调用时标志是否已被设置
        """
        if self._event.is_set():
            self._event.clear()
            return True
        return False
        
    def __repr__(self) -> str:
        return f"CancellationToken(set={self.is_set()})"
