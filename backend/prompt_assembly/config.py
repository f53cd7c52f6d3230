"""
配置管理模块
"""
import logging
import os
from typing import Literal

from pydantic import BaseModel
from dotenv import load_dotenv

# 加载环境变量
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Prompt 组装配置"""

    # 全局 token 预算
    prompt_token_budget_default: int = int(os.getenv("PROMPT_TOKEN_BUDGET_DEFAULT", "8000"))
    prompt_budget_warn_pct: float = float(os.getenv("PROMPT_BUDGET_WARN_PCT", "0.9"))

    # 单文档 token 纪律上限
    doc_token_cap: int = int(os.getenv("PROMPT_DOC_TOKEN_CAP", "300"))

    # 模型（仅写入审计元数据）
    default_model: str = os.getenv("PROMPT_DEFAULT_MODEL", "gpt-4o-mini")

    # scenario 超预算时的默认决策
    scenario_overflow: Literal["drop", "keep"] = os.getenv("PROMPT_SCENARIO_OVERFLOW", "drop")

    # 压缩文档缓存
    doc_cache_ttl_seconds: float = float(os.getenv("PROMPT_DOC_CACHE_TTL_SECONDS", "3600"))
    doc_cache_max_size: int = int(os.getenv("PROMPT_DOC_CACHE_MAX_SIZE", "1000"))


# 全局配置实例
settings = Settings()


def validate_config(config: Settings = settings) -> bool:
    """
    验证配置是否自洽

    Args:
        config: 待验证的配置（默认全局实例）

    Returns:
        bool: 配置是否有效
    """
    ok = True
    if config.prompt_token_budget_default <= 0:
        logger.warning("PROMPT_TOKEN_BUDGET_DEFAULT 必须为正数: %s", config.prompt_token_budget_default)
        ok = False
    if config.doc_token_cap <= 0:
        logger.warning("PROMPT_DOC_TOKEN_CAP 必须为正数: %s", config.doc_token_cap)
        ok = False
    if not 0 < config.prompt_budget_warn_pct <= 1:
        logger.warning("PROMPT_BUDGET_WARN_PCT 应在 (0, 1] 区间: %s", config.prompt_budget_warn_pct)
        ok = False
    if config.scenario_overflow not in ("drop", "keep"):
        logger.warning("PROMPT_SCENARIO_OVERFLOW 只能是 drop 或 keep: %s", config.scenario_overflow)
        ok = False
    if config.doc_cache_max_size <= 0:
        logger.warning("PROMPT_DOC_CACHE_MAX_SIZE 必须为正数: %s", config.doc_cache_max_size)
        ok = False
    return ok
