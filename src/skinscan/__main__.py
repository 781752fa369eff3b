import sys

import uvicorn
from loguru import logger

from skinscan import __version__
from skinscan.config import get_app_settings
from skinscan.main import create_app


def __configure_logger():
    app_settings = get_app_settings()
    logger.remove()
    logger.add(sys.stdout, level=app_settings.log_level.upper(), format=app_settings.log_fmt)
    logger.add(sys.stderr, level="ERROR", format=app_settings.log_fmt)
    logger.add("logs/log_{time}.log", level=app_settings.log_level.upper(), retention="10 days",
               format=app_settings.log_fmt)


if __name__ == "__main__":
    __configure_logger()

    print(f"skinscan v{__version__}")
    app_cfg = get_app_settings()
    print(f" * s3 host: {app_cfg.s3.endpoint}\n"
          f" * bucket: {app_cfg.bucket or '<undefined>'} @ {app_cfg.bucket_url}\n"
          f" * model: {app_cfg.openai.model}\n"
          f" * environment: {app_cfg.environment}")

    l = logger.bind(source="core")
    missing_settings = app_cfg.missing_settings()
    if missing_settings:
        for name in missing_settings:
            l.error(f"Missing critical setting: {name}")
        sys.exit(1)

    l.info("Starting web host")

    web_app = create_app()
    uvicorn.run(web_app, **app_cfg.uvicorn)
