"""
通用工具模块
提供配置管理、日志设置、结果导出等通用功能
"""

import yaml
import json
import logging
import os
import pickle
from datetime import datetime
from typing import Dict, Any, Optional, List
import numpy as np
import pandas as pd

class ConfigManager:
    """配置管理器"""
    
    def __init__(self, config_path: str):
        """
        初始化配置管理器
        
        Args:
            config_path: YAML配置文件路径
        """
        self.config_path = config_path
        self.config = self._load_config()
        
    def _load_config(self) -> Dict[str, Any]:
        """加载配置文件"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise RuntimeError(f"无法加载配置文件 {self.config_path}: {e}") from e
        if not isinstance(config, dict):
            raise RuntimeError(f"配置文件 {self.config_path} 的顶层必须是映射")
        return config
        
    def get(self, key: str, default: Any = None) -> Any:
        """
        获取配置值，支持点分隔的嵌套键，如 'solvers.liapunov.n_tries'
        """
        value = self.config
        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default
            
    def update(self, key: str, value: Any, reason: str = ""):
        """
        更新配置值并记录修改
        
        Args:
            key: 配置键
            value: 新值
            reason: 修改原因
        """
        keys = key.split('.')
        config_ref = self.config
        for k in keys[:-1]:
            config_ref = config_ref.setdefault(k, {})
            
        old_value = config_ref.get(keys[-1])
        config_ref[keys[-1]] = value
        self._track_parameter_change(key, old_value, value, reason)
        
    def _track_parameter_change(self, key: str, old_value: Any,
                                new_value: Any, reason: str):
        """把参数修改追加到跟踪文件"""
        if not self.get('parameter_tracking.enable', False):
            return
            
        track_file = self.get('parameter_tracking.track_file',
                              'logs/parameter_changes.json')
        ensure_dir(os.path.dirname(track_file) or '.')
        
        if os.path.exists(track_file):
            with open(track_file, 'r', encoding='utf-8') as f:
                changes = json.load(f)
        else:
            changes = []
            
        changes.append({
            'timestamp': datetime.now().isoformat(),
            'parameter': key,
            'old_value': str(old_value),
            'new_value': str(new_value),
            'reason': reason,
            'change_magnitude': self._calculate_change_magnitude(old_value, new_value)
        })
        
        with open(track_file, 'w', encoding='utf-8') as f:
            json.dump(changes, f, indent=2, ensure_ascii=False)
            
    def _calculate_change_magnitude(self, old_value: Any, new_value: Any) -> float:
        """数值参数返回相对变化，其他类型返回0或1"""
        numeric = (int, float)
        if (isinstance(old_value, numeric) and isinstance(new_value, numeric)
                and not isinstance(old_value, bool)):
            if old_value == 0:
                return float('inf') if new_value != 0 else 0.0
            return abs((new_value - old_value) / old_value)
        return 1.0 if old_value != new_value else 0.0

class Logger:
    """日志管理器"""
    
    def __init__(self, config: ConfigManager):
        """
        初始化日志管理器
        
        Args:
            config: 配置管理器，读取logging节
        """
        self.config = config
        self.log_file: Optional[str] = None
        self.setup_logging()
        
    def setup_logging(self):
        """设置日志系统"""
        log_level = self.config.get('logging.level', 'INFO')
        log_dir = self.config.get('logging.log_dir', 'logs')
        save_logs = self.config.get('logging.save_logs', True)
        
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level.upper()))
        root_logger.handlers.clear()
        
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        
        if save_logs:
            ensure_dir(log_dir)
            self.log_file = os.path.join(
                log_dir, f"liap_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

class ResultsManager:
    """结果管理器"""
    
    def __init__(self, config: ConfigManager):
        """
        初始化结果管理器
        
        Args:
            config: 配置管理器，读取output节
        """
        self.config = config
        self.results_dir = config.get('output.results_dir', 'results')
        self.data_dir = config.get('output.export.data_dir', 'data')
        
        ensure_dir(self.results_dir)
        ensure_dir(self.data_dir)
        
    def save_results(self, results: Dict[str, Any],
                     filename: str, format: str = 'json') -> str:
        """
        保存实验结果
        
        Args:
            results: 结果字典
            filename: 文件名（不含扩展名）
            format: 保存格式 ('json', 'yaml', 'pkl')
            
        Returns:
            文件路径
        """
        filepath = os.path.join(self.results_dir, f"{filename}.{format}")
        
        if format == 'json':
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(results, f, indent=2, ensure_ascii=False,
                          default=self._json_serializer)
        elif format == 'yaml':
            # 先经JSON序列化器转换NumPy类型
            plain = json.loads(json.dumps(results, default=self._json_serializer))
            with open(filepath, 'w', encoding='utf-8') as f:
                yaml.dump(plain, f, default_flow_style=False, allow_unicode=True)
        elif format == 'pkl':
            with open(filepath, 'wb') as f:
                pickle.dump(results, f)
        else:
            raise ValueError(f"不支持的格式: {format}")
            
        logging.info(f"结果已保存到: {filepath}")
        return filepath
        
    def save_table(self, rows: List[Dict[str, Any]], name: str,
                   metadata: Optional[Dict[str, Any]] = None) -> str:
        """
        保存解的表格（每行一个解）
        
        Args:
            rows: 行记录列表
            name: 数据名称
            metadata: 元数据，仅pkl格式保存
            
        Returns:
            文件路径
        """
        data_format = self.config.get('output.export.data_format', 'csv')
        frame = pd.DataFrame(rows)
        
        if data_format == 'csv':
            filepath = os.path.join(self.data_dir, f"{name}.csv")
            frame.to_csv(filepath, index=False)
        elif data_format == 'pkl':
            filepath = os.path.join(self.data_dir, f"{name}.pkl")
            with open(filepath, 'wb') as f:
                pickle.dump({'data': frame, 'metadata': metadata}, f)
        else:
            raise ValueError(f"不支持的数据格式: {data_format}")
            
        logging.info(f"数据已保存到: {filepath}")
        return filepath
        
    def _json_serializer(self, obj):
        """JSON序列化器，处理NumPy类型"""
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.bool_):
            return bool(obj)
        elif isinstance(obj, datetime):
            return obj.isoformat()
        else:
            raise TypeError(f"无法序列化类型: {type(obj)}")

def create_experiment_id() -> str:
    """创建实验ID"""
    return f"liap_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

def ensure_dir(directory: str):
    """确保目录存在"""
    os.makedirs(directory, exist_ok=True)

def format_number(value: float, precision: int = 4) -> str:
    """格式化数字输出"""
    if abs(value) < 1e-10:
        return f"{0.0:.{precision}f}"
    elif abs(value) >= 1e6 or abs(value) < 10 ** -precision:
        return f"{value:.2e}"
    else:
        return f"{value:.{precision}f}"

def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    验证配置文件
    
    Args:
        config: 配置字典
        
    Returns:
        错误列表，为空表示配置合法
    """
    errors = []
    
    required_keys = [
        'experiment.random_seed',
        'solvers.liapunov.n_tries',
        'solvers.liapunov.stop_after',
        'solvers.liapunov.maxits1',
        'solvers.liapunov.tol1',
        'solvers.liapunov.maxits_n',
        'solvers.liapunov.tol_n',
        'simulation.batch.num_runs',
    ]
    
    for key in required_keys:
        value = config
        try:
            for k in key.split('.'):
                value = value[k]
        except (KeyError, TypeError):
            errors.append(f"缺少必需配置项: {key}")
            
    liap = config.get('solvers', {}).get('liapunov', {}) or {}
    for name in ('n_tries', 'stop_after', 'maxits1', 'maxits_n'):
        if name in liap and not (isinstance(liap[name], int) and liap[name] >= 0):
            errors.append(f"{name}必须是非负整数")
    for name in ('tol1', 'tol_n'):
        if name in liap and not (isinstance(liap[name], (int, float)) and liap[name] > 0):
            errors.append(f"{name}必须为正数")
            
    decomposition = config.get('solvers', {}).get('decomposition', {}) or {}
    if 'max_depth' in decomposition and not decomposition['max_depth'] >= 0:
        errors.append("max_depth必须非负")
    if 'workers' in decomposition and not decomposition['workers'] >= 1:
        errors.append("workers必须至少为1")
        
    batch = config.get('simulation', {}).get('batch', {}) or {}
    if 'num_runs' in batch and not (isinstance(batch['num_runs'], int) and batch['num_runs'] > 0):
        errors.append("num_runs必须是正整数")
    if 'distinct_tol' in batch and not batch['distinct_tol'] > 0:
        errors.append("distinct_tol必须为正数")
        
    return errors
