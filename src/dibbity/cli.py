#!/usr/bin/env python
"""dbt model dry-run cost estimator CLI."""

import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from dibbity.commands.dry_run import dry_run_cmd
from dibbity.commands.list_cmd import list_cmd
from dibbity.commands.logs import logs_cmd
from dibbity.commands.open_cmd import open_cmd
from dibbity.utils.config import load_settings
from dibbity.utils.errors import DibbityError
from dibbity.utils.logger import setup_logging

# バージョン情報
__version__ = "0.1.0"

# コンソール設定
console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a dibbity YAML config file.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: Optional[str]) -> None:
    """dbt model dry-run cost estimator.

    Compiles dbt models, dry-runs them on BigQuery and reports how many
    bytes they would scan.
    """
    # logsコマンドではログファイルを作成しない
    logger = setup_logging(
        verbose=verbose,
        log_to_file=ctx.invoked_subcommand != logs_cmd.name,
        command=ctx.invoked_subcommand,
    )

    # コンテキストオブジェクトにオプションと設定を保存
    ctx.ensure_object(dict)
    ctx.obj["VERBOSE"] = verbose
    try:
        ctx.obj["SETTINGS"] = load_settings(config)
    except DibbityError as e:
        logger.error(f"設定を読み込めませんでした: {e}")
        ctx.exit(1)


# サブコマンドの登録
cli.add_command(dry_run_cmd)
cli.add_command(open_cmd)
cli.add_command(list_cmd)
cli.add_command(logs_cmd)


def main() -> int:
    """CLIエントリポイント。"""
    try:
        return cli(standalone_mode=False) or 0
    except click.ClickException as e:
        e.show()
        return 1
    except Exception as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
