"""
兼容入口：创建应用实例
保留此文件以便使用 uvicorn main:app 启动
"""
from onemin2api.config import load_settings
from onemin2api.main import create_app, run
from onemin2api.utils.logger import configure_root_logger

settings = load_settings()
# 配置根日志记录器（彩色输出）
configure_root_logger(level=settings.log_level, use_color=settings.log_color)

app = create_app(settings)

if __name__ == "__main__":
    run()
