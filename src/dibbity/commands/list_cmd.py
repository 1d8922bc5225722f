"""モデル一覧コマンドモジュール。"""

import logging
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dibbity.commands.common import get_settings
from dibbity.estimator.dbt import DbtRunner
from dibbity.estimator.models import parse_selection
from dibbity.utils.config import get_folder
from dibbity.utils.errors import DibbityError

logger = logging.getLogger(__name__)


@click.command(name="ls")
@click.argument("selectors", nargs=-1)
@click.option(
    "--select", "-s", multiple=True, help="dbtのセレクタ（複数指定・カンマ区切り可）"
)
@click.option(
    "--dbt-dir",
    type=click.Path(file_okay=False),
    help="dbtプロジェクトのディレクトリ（設定ファイルのdbt-dirを上書き）",
)
@click.pass_context
def list_cmd(
    ctx: click.Context,
    selectors: Tuple[str, ...],
    select: Tuple[str, ...],
    dbt_dir: Optional[str],
) -> None:
    """dbt lsでセレクタに該当するモデルの一覧を表示します。"""
    selected = parse_selection(list(select) + list(selectors))
    if not selected:
        raise click.UsageError("セレクタを --select または引数で指定してください", ctx=ctx)

    console = Console(highlight=False)

    try:
        settings = get_settings(ctx, dbt_dir=dbt_dir)
        dbt = DbtRunner(
            get_folder(settings), settings.dbt_command, state_dir=settings.state_dir
        )
        with console.status("[bold blue]dbt lsでモデルを検索しています..."):
            names = dbt.list_models(selected)
    except DibbityError as e:
        logger.error(f"モデル一覧を取得できませんでした: {e}")
        ctx.exit(1)

    if not names:
        console.print("[yellow]該当するモデルがありません。[/yellow]")
        return

    table = Table(title=f"モデル一覧 ({escape(' '.join(selected))})")
    table.add_column("No.", style="cyan")
    table.add_column("モデル", style="green")

    for i, name in enumerate(names, 1):
        table.add_row(str(i), escape(name))

    console.print(table)
