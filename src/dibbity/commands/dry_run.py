"""ドライランコマンドモジュール。"""

import logging
from typing import Optional, Tuple

import click
from rich.console import Console

from dibbity.commands.common import get_settings
from dibbity.estimator.dry_run import run_dry_run
from dibbity.estimator.models import parse_selection
from dibbity.utils.config import BACKENDS
from dibbity.utils.errors import DibbityError

logger = logging.getLogger(__name__)


@click.command(name="dry-run")
@click.argument("models", nargs=-1)
@click.option(
    "--select",
    "-s",
    multiple=True,
    help="ドライランするモデル（複数指定・カンマ区切り可）",
)
@click.option(
    "--compile",
    "-c",
    "compile_first",
    is_flag=True,
    help="ドライランの前にdbt compileを実行",
)
@click.option(
    "--defer",
    is_flag=True,
    help="コンパイル時に本番のステートを参照（--defer --state --favor-state）",
)
@click.option("--empty", is_flag=True, help="コンパイル時に--emptyを付与")
@click.option(
    "--resolve-selectors",
    "-r",
    is_flag=True,
    help="dbt lsでセレクタ（+model, tag:xxx など）をモデル名に展開",
)
@click.option(
    "--backend",
    type=click.Choice(BACKENDS),
    help="ドライランの実行方法（bq: bqコマンド, api: BigQuery API）",
)
@click.option(
    "--dbt-dir",
    type=click.Path(file_okay=False),
    help="dbtプロジェクトのディレクトリ（設定ファイルのdbt-dirを上書き）",
)
@click.pass_context
def dry_run_cmd(
    ctx: click.Context,
    models: Tuple[str, ...],
    select: Tuple[str, ...],
    compile_first: bool,
    defer: bool,
    empty: bool,
    resolve_selectors: bool,
    backend: Optional[str],
    dbt_dir: Optional[str],
) -> None:
    """選択したdbtモデルをBigQueryでドライランし、スキャン量を見積もります。

    モデルは --select または位置引数で指定します。
    """
    selected = parse_selection(list(select) + list(models))
    if not selected:
        raise click.UsageError("モデルを --select または引数で指定してください", ctx=ctx)

    console = Console(highlight=False)

    try:
        settings = get_settings(ctx, dbt_dir=dbt_dir, backend=backend)
        results = run_dry_run(
            settings,
            selected,
            compile_first=compile_first,
            defer=defer,
            empty=empty,
            resolve_selectors=resolve_selectors,
            console=console,
        )
    except DibbityError as e:
        logger.error(f"ドライランを実行できませんでした: {e}")
        ctx.exit(1)

    failed = [m for m in results if not m.ok]
    if failed:
        logger.error(f"{len(failed)}個のモデルのドライランに失敗しました")
        ctx.exit(1)
