import yaml
import os
from typing import Dict, Any, Optional


DEFAULT_CONFIG_PATH = "config.yml"


def _load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Optional[Dict[str, Any]]:
    """
    内部函数：加载并解析 YAML 配置文件。

    Args:
        config_path: 配置文件路径

    Returns:
        配置字典或 None（如果加载失败）
    """
    # 如果是相对路径，则相对于当前工作目录
    if not os.path.isabs(config_path):
        config_path = os.path.join(os.getcwd(), config_path)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)
        return config_data or {}
    except FileNotFoundError:
        print(f"Warning: Config file not found at {config_path}. Using default configuration.")
        return None
    except yaml.YAMLError as exc:
        print(f"Error parsing YAML file: {exc}. Using default configuration.")
        return None


def _section(name: str) -> Dict[str, Any]:
    if not _loaded_config:
        return {}
    return _loaded_config.get(name) or {}


def reload_config(config_path: Optional[str] = None) -> None:
    """
    重新加载配置文件，刷新各配置段

    Args:
        config_path: 配置文件路径，不提供时使用 BOND_MONITOR_CONFIG 或默认路径
    """
    global _loaded_config, MonitorSection, EmailSection, SlackSection, LoggingConfig

    path = config_path or os.getenv("BOND_MONITOR_CONFIG", DEFAULT_CONFIG_PATH)
    _loaded_config = _load_config(path)

    MonitorSection = _section('monitor')
    EmailSection = _section('email')
    SlackSection = _section('slack')
    LoggingConfig = _section('logging')


# 在模块加载时执行配置加载和解析
_loaded_config = _load_config(os.getenv("BOND_MONITOR_CONFIG", DEFAULT_CONFIG_PATH))

# 监控配置（RPC、合约地址、轮询参数）
MonitorSection = _section('monitor')

# 邮件通知配置
EmailSection = _section('email')

# Slack 通知配置
SlackSection = _section('slack')

# 日志配置
LoggingConfig = _section('logging')


def env_override(env_name: str, section: Dict[str, Any], key: str, default: Any = None) -> Any:
    """
    读取配置值，环境变量优先于配置文件

    Args:
        env_name: 环境变量名
        section: 配置段字典
        key: 配置段中的键
        default: 默认值

    Returns:
        配置值
    """
    value = os.getenv(env_name)
    if value is not None and value.strip() != "":
        return value.strip()
    value = section.get(key)
    return default if value is None else value


if __name__ == "__main__":
    for name, section in (('monitor', MonitorSection), ('email', EmailSection),
                          ('slack', SlackSection), ('logging', LoggingConfig)):
        print(f"--- {name} ---")
        for key, value in section.items():
            print(f"  {key}: {value}")
