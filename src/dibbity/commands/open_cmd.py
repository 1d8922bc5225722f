"""BigQueryコンソールを開くコマンドモジュール。"""

import logging
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from dibbity.commands.common import get_settings
from dibbity.estimator.console_url import resolve_console_url
from dibbity.utils.errors import DibbityError

logger = logging.getLogger(__name__)


@click.command(name="open")
@click.option("--select", "-s", "model_name", required=True, help="開くモデル")
@click.option(
    "--project-id",
    help="BigQueryプロジェクトID（設定ファイルのproject-idを上書き）",
)
@click.option(
    "--dbt-dir",
    type=click.Path(file_okay=False),
    help="dbtプロジェクトのディレクトリ（設定ファイルのdbt-dirを上書き）",
)
@click.option(
    "--print-only", is_flag=True, help="ブラウザを開かずにURLを表示する"
)
@click.pass_context
def open_cmd(
    ctx: click.Context,
    model_name: str,
    project_id: Optional[str],
    dbt_dir: Optional[str],
    print_only: bool,
) -> None:
    """選択したモデルのテーブルをBigQuery Studioで開きます。"""
    console = Console(highlight=False)

    try:
        settings = get_settings(ctx, project_id=project_id, dbt_dir=dbt_dir)
        location, url = resolve_console_url(settings, model_name)
    except DibbityError as e:
        logger.error(f"モデル {model_name} のURLを特定できませんでした: {e}")
        ctx.exit(1)

    if print_only:
        click.echo(url)
        return

    console.print(f"[magenta]{escape(location.table)} をブラウザで開きます[/magenta]")
    logger.debug(f"URL: {url}")

    if click.launch(url) != 0:
        logger.error(f"ブラウザを開けませんでした: {url}")
        ctx.exit(1)
