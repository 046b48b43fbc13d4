"""
swapsim - Command Line Entry

在分叉链上执行一次 swap 模拟并打印结果。所有参数来自 Settings（SWAPSIM_* 环境变量）。
"""

import logging
import sys

from pydantic import ValidationError

from .config import get_settings
from .errors import SimulationError
from .report import print_error, print_report
from .simulation.harness import SwapSimulation


# =============================================================================
# Logging Configuration
# =============================================================================

def setup_logging(level: str = "INFO"):
    """配置日志"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )


# =============================================================================
# Main
# =============================================================================

def main() -> int:
    """主入口"""
    try:
        settings = get_settings()
    except ValidationError as e:
        print_error(f"配置无效: {e}")
        return 1

    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info(f"swapsim 启动: 源链 {settings.source_rpc_url}")
    logger.info("=" * 60)

    simulation = SwapSimulation(settings)
    try:
        report = simulation.run()
    except SimulationError as e:
        logger.error(f"步骤 {simulation.current_step} 失败: {type(e).__name__}: {e}")
        print_error(f"模拟失败 [{simulation.current_step}] {type(e).__name__}: {e}")
        return 1

    print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
