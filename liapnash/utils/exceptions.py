"""
异常类型模块
区分可恢复的求解结果与必须上报给调用方的结构性/数值性错误
"""


class LiapError(Exception):
    """liapnash所有显式错误的基类"""


class GameStructureError(LiapError, ValueError):
    """博弈树或策略Profile的构造方式不合法"""


class SubgameConsistencyError(LiapError):
    """
    子博弈标记不一致
    
    某个信息集无法映射到任何已标记的子博弈根节点，
    说明模型层提供的子博弈标记本身有误，分解器不能继续构造。
    """


class LiapArithmeticError(LiapError, ArithmeticError):
    """数值病态：当前尝试无法继续，与普通的"未收敛"区分开"""


class DegenerateDirectionError(LiapArithmeticError):
    """线搜索方向为零向量（或非有限），无法归一化"""


class PayoffNormalizationError(LiapArithmeticError):
    """条件收益归一化时分母为零"""
