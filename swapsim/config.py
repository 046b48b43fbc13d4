"""
swapsim Configuration Management

所有参数都有复现默认场景的默认值，可通过 SWAPSIM_* 环境变量或 .env 文件覆盖。
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ABI_DIR = Path(__file__).parent / "abi"

# Anvil 默认助记词
DEFAULT_MNEMONIC = "test test test test test test test test test test test junk"


class Settings(BaseSettings):
    """swapsim 配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
        populate_by_name=True,
    )

    # Source chain
    source_rpc_url: str = Field(
        default="http://127.0.0.1:8545",
        alias="SWAPSIM_SOURCE_RPC_URL"
    )

    # Anvil fork
    anvil_binary_path: str = Field(default="anvil", alias="SWAPSIM_ANVIL_BINARY_PATH")
    anvil_base_port: int = Field(default=8546, alias="SWAPSIM_ANVIL_BASE_PORT")
    fork_chain_id: int = Field(default=31337, alias="SWAPSIM_FORK_CHAIN_ID")
    fork_mnemonic: str = Field(default=DEFAULT_MNEMONIC, alias="SWAPSIM_FORK_MNEMONIC")
    fork_accounts: int = Field(default=10, ge=1, alias="SWAPSIM_FORK_ACCOUNTS")
    account_index: int = Field(default=0, ge=0, alias="SWAPSIM_ACCOUNT_INDEX")
    startup_timeout_seconds: int = Field(default=30, alias="SWAPSIM_STARTUP_TIMEOUT_SECONDS")
    receipt_timeout_seconds: int = Field(default=120, alias="SWAPSIM_RECEIPT_TIMEOUT_SECONDS")

    # Contracts (Ethereum mainnet)
    router_address: str = Field(
        default="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",  # Uniswap V2 Router02
        alias="SWAPSIM_ROUTER_ADDRESS"
    )
    wrapped_native_address: str = Field(
        default="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",  # WETH
        alias="SWAPSIM_WRAPPED_NATIVE_ADDRESS"
    )
    token_address: str = Field(
        default="0x6B175474E89094C44Da98b954EedeAC495271d0F",  # DAI
        alias="SWAPSIM_TOKEN_ADDRESS"
    )
    router_abi_path: Path = Field(
        default=ABI_DIR / "uniswap_v2_router.json",
        alias="SWAPSIM_ROUTER_ABI_PATH"
    )
    token_abi_path: Path = Field(
        default=ABI_DIR / "erc20.json",
        alias="SWAPSIM_TOKEN_ABI_PATH"
    )

    # Swap parameters
    spend_wei: int = Field(default=100_000_000_000_000_000, gt=0, alias="SWAPSIM_SPEND_WEI")
    amount_out_min: int = Field(default=100, ge=0, alias="SWAPSIM_AMOUNT_OUT_MIN")
    gas_limit: int = Field(default=200_000, gt=0, alias="SWAPSIM_GAS_LIMIT")
    # None 表示不限制（uint256 最大值）
    deadline: Optional[int] = Field(default=None, alias="SWAPSIM_DEADLINE")

    # Logging
    log_level: str = Field(default="INFO", alias="SWAPSIM_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别名称"""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"未知的日志级别: {v}")
        return level


# 全局配置实例
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """获取全局配置实例"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """重新加载配置"""
    global _settings
    _settings = Settings()
    return _settings
