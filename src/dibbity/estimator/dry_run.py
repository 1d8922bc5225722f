"""dbtモデルのドライランを行うビジネスロジック"""
import logging
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dibbity.estimator.bigquery import DryRunnerBase, create_dry_runner
from dibbity.estimator.dbt import DbtOptions, DbtRunner
from dibbity.estimator.models import Model, parse_selection, resolve_models
from dibbity.utils.config import Settings, get_folder
from dibbity.utils.errors import DibbityError
from dibbity.utils.formatting import (
    estimate_cost,
    format_bytes,
    format_cost,
    print_box,
)

logger = logging.getLogger(__name__)


def compile_models(
    dbt: DbtRunner,
    selected: List[str],
    defer: bool,
    empty: bool,
    console: Console,
) -> None:
    """選択したモデルをdbt compileでコンパイルします。"""
    options = DbtOptions("compile", select=selected, defer=defer, empty=empty)
    with console.status("[bold blue]モデルをコンパイルしています..."):
        dbt.compile_models(options)
    console.print(f"[green]{len(selected)}個のセレクタをコンパイルしました。[/green]")


def expand_selectors(dbt: DbtRunner, selected: List[str], console: Console) -> List[str]:
    """dbt lsでセレクタをモデル名に展開します。

    Raises:
        DibbityError: 該当するモデルが1つもない場合
    """
    with console.status("[bold blue]dbt lsでモデルを検索しています..."):
        names = dbt.list_models(selected)

    if not names:
        raise DibbityError(f"セレクタに該当するモデルがありません: {' '.join(selected)}")

    logger.info(f"{len(names)}個のモデルが見つかりました: {', '.join(names)}")
    return names


def dry_run_models(
    runner: DryRunnerBase, models: List[Model], console: Console
) -> List[Model]:
    """モデルを順番にドライランします。

    Args:
        runner: ドライランナー (bq CLI または BigQuery API)
        models: ドライラン対象のモデル
        console: コンソールオブジェクト

    Returns:
        結果を格納したモデルのリスト
    """
    total = len(models)
    for i, model in enumerate(models, 1):
        with console.status(
            f"[bold blue]ドライランしています: {escape(model.name)} ({i}/{total})"
        ):
            runner.dry_run(model)

        if model.ok:
            logger.debug(f"{model.name}: {model.bytes_processed} bytes")
        else:
            logger.warning(f"{model.name} のドライランに失敗しました")
    return models


def display_results(
    models: List[Model], price_per_tib: float, console: Console
) -> None:
    """ドライランの結果を表示します。

    Args:
        models: ドライラン済みのモデル
        price_per_tib: 1TiBあたりの料金（USD）
        console: コンソールオブジェクト
    """
    table = Table(title="ドライラン結果")
    table.add_column("No.", style="cyan")
    table.add_column("モデル", style="green")
    table.add_column("処理バイト数", justify="right")
    table.add_column("見積もり料金", justify="right")
    table.add_column("状態")

    total_bytes = 0
    for i, model in enumerate(models, 1):
        if model.ok:
            total_bytes += model.bytes_processed
            table.add_row(
                str(i),
                escape(model.name),
                format_bytes(model.bytes_processed),
                format_cost(estimate_cost(model.bytes_processed, price_per_tib)),
                "[green]OK[/green]",
            )
        else:
            table.add_row(
                str(i), escape(model.name), "-", "-", "[bold red]ERROR[/bold red]"
            )

    table.add_section()
    table.add_row(
        "",
        "[bold]合計[/bold]",
        format_bytes(total_bytes),
        format_cost(estimate_cost(total_bytes, price_per_tib)),
        "",
    )
    console.print(table)

    for model in models:
        if not model.ok:
            print_box(
                console,
                f"ドライラン失敗: {escape(model.name)}",
                model.error or "不明なエラー",
                style="red",
            )


def run_dry_run(
    settings: Settings,
    select: Sequence[str],
    compile_first: bool = False,
    defer: bool = False,
    empty: bool = False,
    resolve_selectors: bool = False,
    console: Optional[Console] = None,
) -> List[Model]:
    """選択したモデルのドライランを実行し、結果を表示します。

    Args:
        settings: 設定
        select: --selectの値と位置引数
        compile_first: 事前にdbt compileを実行するかどうか
        defer: コンパイル時に本番のステートを参照するかどうか
        empty: コンパイル時に--emptyを付与するかどうか
        resolve_selectors: dbt lsでセレクタをモデル名に展開するかどうか
        console: コンソールオブジェクト

    Returns:
        ドライラン済みのモデルのリスト

    Raises:
        DibbityError: 設定・dbt・モデル解決・ドライランのいずれかで致命的なエラーが発生した場合
    """
    console = console or Console(highlight=False)

    selected = parse_selection(select)
    if not selected:
        raise DibbityError("モデルが選択されていません（--selectで指定してください）")
    logger.debug(f"選択されたモデル: {selected}")

    dbt_dir = get_folder(settings)
    dbt = DbtRunner(dbt_dir, settings.dbt_command, state_dir=settings.state_dir)

    if compile_first:
        compile_models(dbt, selected, defer, empty, console)

    if resolve_selectors:
        selected = expand_selectors(dbt, selected, console)

    models = resolve_models(selected, dbt_dir, "target")
    logger.debug(f"モデルのパス: { {m.name: str(m.path) for m in models} }")

    runner = create_dry_runner(settings)
    dry_run_models(runner, models, console)
    display_results(models, settings.price_per_tib, console)

    return models
