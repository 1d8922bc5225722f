"""ロギングユーティリティモジュール。"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

# ログファイルを保存するディレクトリ
LOG_DIR = Path.home() / ".dibbity" / "logs"

# ログファイル名の日時フォーマット
LOG_FILE_TIME_FORMAT = "%Y-%m-%d_%H-%M-%S"

# 実行したコマンドをログファイルに記録する際の接頭辞
COMMAND_PREFIX = "コマンド: "

# コンソール出力用のリッチハンドラー
console = Console()


def setup_logging(
    verbose: bool = False, log_to_file: bool = True, command: Optional[str] = None
) -> logging.Logger:
    """アプリケーションのロギング設定を行う。

    複数回呼び出された場合は、既存のハンドラーを置き換える。

    Args:
        verbose: 詳細なログ出力を有効にするかどうか
        log_to_file: 実行ごとのログファイルを作成するかどうか
        command: ログファイルに記録するサブコマンド名

    Returns:
        設定済みのロガーオブジェクト
    """
    logger = logging.getLogger("dibbity")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=verbose,
        show_path=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if not log_to_file:
        return logger

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    # ログファイル名を生成 (YYYY-MM-DD_HH-MM-SS.log)
    timestamp = datetime.now().strftime(LOG_FILE_TIME_FORMAT)
    log_file = LOG_DIR / f"{timestamp}.log"

    # ファイルには常に詳細なログを出力
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logger.addHandler(file_handler)

    if command:
        logger.debug(f"{COMMAND_PREFIX}{command}")
    logger.debug(f"ログファイル: {log_file}")

    return logger


def read_log_command(log_file: Path) -> Optional[str]:
    """ログファイルに記録されたサブコマンド名を取得する。

    Returns:
        サブコマンド名。記録が無い場合はNone
    """
    with open(log_file, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            _, sep, command = line.partition(COMMAND_PREFIX)
            if sep:
                return command.strip()
    return None


def get_recent_logs(limit: int = 5) -> List[Path]:
    """最近のログファイルを取得する。

    Args:
        limit: 取得するログファイルの数

    Returns:
        最近のログファイルのパスのリスト（新しい順）
    """
    if not LOG_DIR.exists():
        return []

    log_files = sorted(
        LOG_DIR.glob("*.log"), key=lambda p: p.stat().st_mtime, reverse=True
    )

    return log_files[:limit]


def display_log_content(log_file: Path) -> None:
    """ログファイルの内容を表示する。"""
    if not log_file.exists():
        console.print(
            f"[bold red]ログファイルが見つかりません: {escape(str(log_file))}[/bold red]"
        )
        return

    console.print(f"[bold]ログファイル: {escape(log_file.name)}[/bold]")
    console.rule()

    with open(log_file, "r", encoding="utf-8") as f:
        console.print(f.read(), markup=False, highlight=False)

    console.rule()
