"""ドライランのビジネスロジックのテスト"""
import io
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from dibbity.estimator.dry_run import display_results, run_dry_run
from dibbity.estimator.models import Model
from dibbity.utils.errors import DbtCommandError, DibbityError, ModelNotFoundError


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120, color_system=None)


def test_run_dry_run(settings, fake_subprocess, bq_response, console):
    """選択したモデルが順番にドライランされることをテスト"""
    fake_subprocess.bq_results["raw.orders"] = (0, bq_response(3 * 1024**3))
    fake_subprocess.bq_results["raw.customers"] = (0, bq_response(512))

    with patch("dibbity.estimator.bigquery.subprocess.run", side_effect=fake_subprocess.run):
        models = run_dry_run(settings, ["orders,customers"], console=console)

    assert [m.name for m in models] == ["orders", "customers"]
    assert [m.bytes_processed for m in models] == [3 * 1024**3, 512]
    assert all(m.ok for m in models)

    # コンパイルしない場合はbqのみが呼ばれる
    assert [cmd[0] for cmd, _ in fake_subprocess.calls] == ["bq", "bq"]

    output = console.file.getvalue()
    assert "orders" in output
    assert "3.00 GiB" in output
    assert "512 B" in output
    assert "$0.0183" in output


def test_run_dry_run_with_compile(settings, fake_subprocess, console):
    """--compile指定時にdbt compileが先に実行されることをテスト"""
    with patch("dibbity.estimator.bigquery.subprocess.run", side_effect=fake_subprocess.run):
        run_dry_run(
            settings,
            ["orders"],
            compile_first=True,
            defer=True,
            empty=True,
            console=console,
        )

    compile_cmd, compile_kwargs = fake_subprocess.calls[0]
    assert compile_cmd == [
        "poetry",
        "run",
        "dbt",
        "compile",
        "--select",
        "orders",
        "--defer",
        "--state",
        "target_prod",
        "--favor-state",
        "--empty",
    ]
    assert compile_kwargs["cwd"] == settings.dbt_dir
    assert fake_subprocess.calls[1][0][0] == "bq"


def test_run_dry_run_compile_failure(settings, fake_subprocess, console):
    """コンパイルに失敗した場合はドライランせずにエラーになることをテスト"""
    fake_subprocess.dbt_results["compile"] = (1, "Compilation Error")

    with patch("dibbity.estimator.bigquery.subprocess.run", side_effect=fake_subprocess.run):
        with pytest.raises(DbtCommandError):
            run_dry_run(settings, ["orders"], compile_first=True, console=console)

    assert len(fake_subprocess.calls) == 1


def test_run_dry_run_resolve_selectors(settings, fake_subprocess, console):
    """dbt lsでセレクタが展開されることをテスト"""
    fake_subprocess.dbt_results["ls"] = (0, '{"name": "customers"}\n{"name": "orders"}\n')

    with patch("dibbity.estimator.bigquery.subprocess.run", side_effect=fake_subprocess.run):
        models = run_dry_run(
            settings, ["tag:sales"], resolve_selectors=True, console=console
        )

    assert [m.name for m in models] == ["customers", "orders"]
    ls_cmd, _ = fake_subprocess.calls[0]
    assert "ls" in ls_cmd and "tag:sales" in ls_cmd


def test_run_dry_run_resolve_selectors_empty(settings, fake_subprocess, console):
    """セレクタに該当するモデルが無い場合のエラーをテスト"""
    with patch("dibbity.estimator.bigquery.subprocess.run", side_effect=fake_subprocess.run):
        with pytest.raises(DibbityError):
            run_dry_run(settings, ["tag:none"], resolve_selectors=True, console=console)


def test_run_dry_run_partial_failure(settings, fake_subprocess, bq_response, console):
    """一部のモデルが失敗しても残りのモデルはドライランされることをテスト"""
    fake_subprocess.bq_results["raw.orders"] = (1, "Not found: Table my-project:raw.orders")
    fake_subprocess.bq_results["raw.customers"] = (0, bq_response(1024))

    with patch("dibbity.estimator.bigquery.subprocess.run", side_effect=fake_subprocess.run):
        models = run_dry_run(settings, ["orders", "customers"], console=console)

    assert [m.ok for m in models] == [False, True]
    assert models[0].error == "Not found: Table my-project:raw.orders"

    output = console.file.getvalue()
    assert "ERROR" in output
    assert "Not found: Table my-project:raw.orders" in output


def test_run_dry_run_missing_model(settings, fake_subprocess, console):
    """モデルが見つからない場合はドライランせずにエラーになることをテスト"""
    with patch("dibbity.estimator.bigquery.subprocess.run", side_effect=fake_subprocess.run):
        with pytest.raises(ModelNotFoundError):
            run_dry_run(settings, ["orders", "payments"], console=console)

    assert fake_subprocess.calls == []


def test_run_dry_run_requires_selection(settings, console):
    """モデルが選択されていない場合のエラーをテスト"""
    with pytest.raises(DibbityError):
        run_dry_run(settings, [], console=console)


def test_display_results_total(console):
    """成功したモデルのみが合計されることをテスト"""
    ok = Model("orders", Path("orders.sql"))
    ok.ok, ok.bytes_processed = True, 1024**4
    failed = Model("customers", Path("customers.sql"))
    failed.ok, failed.error = False, "Access Denied"

    display_results([ok, failed], 6.25, console)

    output = console.file.getvalue()
    assert "1.00 TiB" in output
    assert output.count("$6.2500") == 2
    assert "Access Denied" in output


def test_display_results_escapes_model_names(console):
    """モデル名の角括弧がマークアップとして解釈されないことをテスト"""
    ok = Model("orders[x]", Path("orders.sql"))
    ok.ok, ok.bytes_processed = True, 512
    failed = Model("customers[bold]", Path("customers.sql"))
    failed.ok, failed.error = False, "Syntax error: Unexpected keyword SELECT at [1:8]"

    display_results([ok, failed], 6.25, console)

    output = console.file.getvalue()
    assert "orders[x]" in output
    assert "ドライラン失敗: customers[bold]" in output
    assert "Unexpected keyword SELECT at [1:8]" in output
