"""ログ表示コマンドモジュール。"""

from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dibbity.utils.logger import (
    LOG_FILE_TIME_FORMAT,
    display_log_content,
    get_recent_logs,
    read_log_command,
)


def format_log_time(log_file: Path) -> str:
    """ログファイル名 (YYYY-MM-DD_HH-MM-SS) から実行日時を組み立てる。"""
    try:
        started = datetime.strptime(log_file.stem, LOG_FILE_TIME_FORMAT)
    except ValueError:
        return escape(log_file.stem)
    return started.strftime("%Y-%m-%d %H:%M:%S")


@click.group(name="logs")
def logs_cmd() -> None:
    """ログ関連のコマンド。

    ドライランやコンパイルの実行ログを表示します。
    """
    pass


@logs_cmd.command(name="list")
@click.option(
    "--limit", "-n", type=int, default=5, help="表示するログの数（デフォルト: 5）"
)
def list_logs(limit: int) -> None:
    """最近の実行ログの一覧を表示する。

    各ログを作成したサブコマンド（dry-run, open, ls）も表示します。
    """
    console = Console(highlight=False)
    log_files = get_recent_logs(limit=limit)

    if not log_files:
        console.print("[yellow]ログファイルが見つかりません。[/yellow]")
        return

    table = Table(title="dibbityの実行ログ")
    table.add_column("No.", style="cyan")
    table.add_column("実行日時", style="magenta")
    table.add_column("コマンド", style="green")
    table.add_column("ファイル名")

    for i, log_file in enumerate(log_files, 1):
        table.add_row(
            str(i),
            format_log_time(log_file),
            escape(read_log_command(log_file) or "-"),
            escape(log_file.name),
        )

    console.print(table)


@logs_cmd.command(name="show")
@click.option("--last", "-l", is_flag=True, help="最新のログファイルを表示する")
@click.option("--number", "-n", type=int, help="インデックス番号でログファイルを指定")
@click.pass_context
def show_log(ctx: click.Context, last: bool, number: Optional[int]) -> None:
    """ログファイルの内容を表示する（デフォルトは最新のログ）。"""
    console = Console()

    if number is None or last:
        log_files = get_recent_logs(limit=1)
    else:
        log_files = get_recent_logs(limit=max(number, 1))

    if not log_files:
        console.print("[yellow]ログファイルが見つかりません。[/yellow]")
        return

    if number is None or last:
        display_log_content(log_files[0])
    elif 1 <= number <= len(log_files):
        display_log_content(log_files[number - 1])
    else:
        console.print(
            f"[bold red]エラー: 有効なログ番号を指定してください（1-{len(log_files)}）[/bold red]"
        )
        ctx.exit(1)
