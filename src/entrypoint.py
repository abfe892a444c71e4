"""CLIエントリーポイント"""
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

import uvicorn

from .features.geocoding.domain.models import BatchGeocodeItem
from .infrastructure.config.settings import Settings
from .infrastructure.container import ServiceContainer
from .server import create_app
from .shared.exceptions.errors import DiscoveryError, ValidationError
from .shared.logging.config import get_logger, setup_logging

logger = get_logger(__name__)


def load_batch_items(path: Path) -> list[BatchGeocodeItem]:
    """
    バッチジオコーディングの入力ファイルを読み込む

    形式: [{"id": "...", "address": "...", "country": "FR"}, ...]
    または {"addresses": [...]}

    Raises:
        ValidationError: ファイルの形式が不正な場合
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Failed to read batch file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("addresses")
    if not isinstance(data, list):
        raise ValidationError(f"Batch file must contain a list of addresses: {path}")

    items = []
    for position, entry in enumerate(data):
        if not isinstance(entry, dict) or not entry.get("address"):
            raise ValidationError(f"Entry {position} has no address")
        items.append(
            BatchGeocodeItem(
                id=str(entry.get("id", position)),
                address=str(entry["address"]),
                country_hint=entry.get("country"),
            )
        )
    return items


def run_init_index(container: ServiceContainer) -> int:
    container.search_index.initialize_index()
    logger.info("Search index initialized")
    return 0


def run_batch_geocode(container: ServiceContainer, path: Path, show_progress: bool) -> int:
    """結果をJSONで標準出力に書き出す（ログは標準エラー）"""
    items = load_batch_items(path)
    results = container.geocoding_service.batch_geocode(items, show_progress=show_progress)

    success = sum(1 for item in results if item.result is not None)
    output: dict[str, Any] = {
        "total": len(results),
        "success": success,
        "failures": len(results) - success,
        "results": [
            {
                "id": item.id,
                "result": item.result.to_dict() if item.result else None,
                "error": item.error,
            }
            for item in results
        ],
    }
    json.dump(output, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


def run_server(settings: Settings) -> int:
    """読み込み済みの設定（--env-file, --log-level反映後）でHTTPサーバーを起動"""
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """
    メインエントリーポイント

    Args:
        argv: コマンドライン引数（省略時はsys.argv）

    Returns:
        int: 終了コード（0: 成功, 1: 失敗）
    """
    parser = argparse.ArgumentParser(description="物件検索・位置情報サービス")

    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="環境変数ファイルのパス（デフォルト: .env）",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="ログレベル",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-index", help="検索インデックスを作成し設定を反映")

    batch_parser = subparsers.add_parser("batch-geocode", help="JSONファイルの住所を一括ジオコーディング")
    batch_parser.add_argument("file", type=Path, help="入力JSONファイル")
    batch_parser.add_argument(
        "--no-progress",
        action="store_true",
        help="プログレスバーを表示しない",
    )

    subparsers.add_parser("serve", help="HTTPサーバーを起動")

    args = parser.parse_args(argv)

    try:
        # 設定を読み込み
        settings = Settings(_env_file=args.env_file)

        # ログレベルを上書き
        if args.log_level:
            settings.log_level = args.log_level

        setup_logging(
            level=settings.log_level,
            enable_cloud_logging=settings.gcp_logging_enabled,
            project_id=settings.gcp_project_id,
            service_name=settings.project_name,
        )

        logger.info(f"Running command: {args.command}")
        logger.info(f"Environment: {settings.environment}")

        if args.command == "serve":
            return run_server(settings)

        container = ServiceContainer(settings)
        try:
            if args.command == "init-index":
                return run_init_index(container)
            return run_batch_geocode(container, args.file, show_progress=not args.no_progress)
        finally:
            container.close()

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130  # SIGINT
    except DiscoveryError as e:
        logger.error(f"Command failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
