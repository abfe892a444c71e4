"""ロギング設定（HTTPサーバーとCLIで共通）"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 外部クライアントのリクエスト単位のログは抑制する
NOISY_LOGGERS = ("urllib3", "google", "googlemaps", "meilisearch")

# uvicornは独自ハンドラーを持つため、ルートに流して書式を揃える
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# setup_loggingが追加したハンドラーの目印
_HANDLER_MARKER = "_property_discovery_handler"


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARKER, True)
    return handler


def _create_cloud_handler(project_id: Optional[str], service_name: str) -> logging.Handler:
    from google.cloud import logging as cloud_logging

    client = cloud_logging.Client(project=project_id)
    return cloud_logging.handlers.CloudLoggingHandler(
        client, name=service_name, labels={"service": service_name}
    )


def setup_logging(
    level: str = "INFO",
    enable_cloud_logging: bool = False,
    project_id: Optional[str] = None,
    service_name: str = "property-discovery-service",
) -> None:
    """
    ルートロガーを設定

    何度呼んでもハンドラーは重複しない（テストでアプリを複数生成するため）。
    ログは標準エラーに出す。CLIの標準出力はJSON結果の出力に使う。

    Args:
        level: ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_cloud_logging: Cloud Loggingにも送るか（google-cloud-loggingが必要）
        project_id: GCPプロジェクトID
        service_name: Cloud Loggingのログ名・ラベル
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(_mark(console_handler))

    if enable_cloud_logging:
        try:
            root_logger.addHandler(_mark(_create_cloud_handler(project_id, service_name)))
            logging.info(f"Cloud Logging enabled: log_name={service_name}")
        except Exception as e:
            logging.warning(f"Failed to enable Cloud Logging: {e}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    logging.info(f"Logging configured with level: {logging.getLevelName(log_level)}")


def get_logger(name: str) -> logging.Logger:
    """モジュール用のロガーを取得（通常は__name__を渡す）"""
    return logging.getLogger(name)
