# example.py
"""
这是一个 mc-query API 的最小示例。

它演示了如何将 mc-query 作为一个库导入到你自己的项目中，
依次执行 Server List Ping、Query Full Stat 与一条 RCON 命令。

运行此示例：
1. 在根目录创建 .env 文件 (或直接导出环境变量)，至少包含 MCQUERY_HOST。
   例如:
       MCQUERY_HOST=127.0.0.1
       MCQUERY_RCON_PASSWORD=secret
2. 确保已安装依赖： pip install -e .
3. 从项目根目录运行： python example.py [rcon 命令]
"""

import asyncio
import logging
import sys
from pathlib import Path

# 日志配置开始
logging.basicConfig(
    level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("McQueryExample")
# 日志配置结束

try:
    from mc_query import (
        AuthError,
        ConfigError,
        McQueryCore,
        McQueryError,
        NetworkTimeout,
        load_config_from_env,
    )

    logger.info("成功导入 mc_query。")
except ImportError as ie:
    logger.critical(f"导入 mc_query 失败: {ie}")
    logger.critical("请先在项目根目录执行 pip install -e .")
    sys.exit(1)


async def main(command: str) -> None:
    """
    程序主入口点。
    三种协议互相独立，任意一种失败都不影响其余查询。
    """
    env_file = Path(__file__).resolve().parent / ".env"
    try:
        config = load_config_from_env(env_file if env_file.exists() else None)
    except ConfigError as e:
        logger.error(f"配置加载失败: {e}")
        sys.exit(1)

    core = McQueryCore(config)

    # 1. Server List Ping
    try:
        resp = await core.status()
        logger.info(
            f"[Status] {resp.version.name} | {resp.players.online}/{resp.players.max} "
            f"| {resp.motd!r} | {resp.latency_ms or 0:.1f} ms"
        )
    except NetworkTimeout:
        logger.warning("[Status] 服务器未在时限内响应。")
    except McQueryError as e:
        logger.error(f"[Status] 查询失败: {e}")

    # 2. Query (需要服务端开启 enable-query)
    try:
        stat = await core.query_full()
        logger.info(f"[Query] {stat.motd} | 在线玩家: {', '.join(stat.players) or '-'}")
    except NetworkTimeout:
        logger.warning("[Query] 无响应，服务端可能未开启 enable-query。")
    except McQueryError as e:
        logger.error(f"[Query] 查询失败: {e}")

    # 3. RCON (需要服务端开启 enable-rcon 并配置密码)
    if not config.rcon_password:
        logger.info("[RCON] 未配置 MCQUERY_RCON_PASSWORD，跳过。")
        return
    try:
        output = await core.run_command(command)
        logger.info(f"[RCON] {command} -> {output}")
    except AuthError:
        logger.error("[RCON] 认证失败，请检查密码。")
    except McQueryError as e:
        logger.error(f"[RCON] 执行失败: {e}")


# 程序入口
if __name__ == "__main__":
    try:
        asyncio.run(main(" ".join(sys.argv[1:]) or "list"))
    except KeyboardInterrupt:
        logger.info("收到用户中断信号 (Ctrl+C)，退出。")
