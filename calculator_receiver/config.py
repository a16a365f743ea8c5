import os

# OneBot 实现提供的正向 WebSocket 地址
WS_URI: str = os.getenv("CALC_WS_URI", "ws://localhost:3001")

LOG_FORMAT: str = "%(asctime)s - %(levelname)s - %(message)s"
LOG_FILE: str = os.getenv("CALC_LOG_FILE", "bot.log")

# 用户屏幕数据目录
DATA_DIR: str = os.getenv("CALC_DATA_DIR", "screens")
# 保存间隔（秒）
SAVE_INTERVAL: float = float(os.getenv("CALC_SAVE_INTERVAL", "60"))
# 超过该时间（秒）未访问的屏幕会被移出内存
EXPIRE_SECONDS: float = float(os.getenv("CALC_EXPIRE_SECONDS", "3600"))
