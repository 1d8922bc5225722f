"""pytest共通設定"""
import json
import logging
import os
import subprocess

import pytest

from dibbity.utils.config import Settings


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """ホームディレクトリ・カレントディレクトリ・ログ出力先をテスト用に切り替えるフィクスチャ"""
    home = tmp_path / "home"
    home.mkdir()
    workdir = tmp_path / "work"
    workdir.mkdir()

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(workdir)
    for key in list(os.environ):
        if key.startswith("DIBBITY_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr("dibbity.utils.logger.LOG_DIR", tmp_path / "logs")

    yield

    logger = logging.getLogger("dibbity")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def dbt_dir(tmp_path):
    """コンパイル済みSQLとモデル定義を持つdbtプロジェクトを提供するフィクスチャ

    dags/templates/models/<project>/<dataset>/<table>.sql のレイアウトを再現する。
    """
    root = tmp_path / "repo" / "dags" / "templates"

    compiled = root / "target" / "compiled" / "analytics" / "models" / "sales"
    compiled.mkdir(parents=True)
    (compiled / "orders.sql").write_text(
        "-- orders\nselect * from `my-project.raw.orders`\n", encoding="utf-8"
    )
    (compiled / "customers.sql").write_text(
        "select * from `my-project.raw.customers`\n", encoding="utf-8"
    )

    models = root / "models" / "my-project" / "sales"
    models.mkdir(parents=True)
    (models / "orders.sql").write_text(
        "select * from {{ source('raw', 'orders') }}\n", encoding="utf-8"
    )
    (root / "models" / "flat.sql").write_text("select 1\n", encoding="utf-8")

    return root


@pytest.fixture
def settings(dbt_dir):
    """テスト用dbtプロジェクトを指す設定を提供するフィクスチャ"""
    return Settings(dbt_dir=str(dbt_dir), project_id="my-project")


def completed(args, returncode=0, stdout="", stderr=""):
    """subprocess.runの戻り値を作成するヘルパー"""
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)


def dry_run_response(total_bytes):
    """bq query --dry_run --format=json のレスポンスを作成するヘルパー"""
    return json.dumps(
        {
            "status": {"state": "DONE"},
            "statistics": {"query": {"totalBytesProcessed": str(total_bytes)}},
        }
    )


@pytest.fixture
def fake_subprocess():
    """dbtとbqの呼び出しを記録し、コマンドに応じた結果を返すフェイク

    bq_results にモデルのSQLに含まれる文字列をキーとして結果を登録する。
    """

    class FakeSubprocess:
        def __init__(self):
            self.calls = []
            self.dbt_results = {}
            self.bq_results = {}

        def run(self, cmd, **kwargs):
            self.calls.append((cmd, kwargs))
            if cmd[0] == "bq":
                for marker, result in self.bq_results.items():
                    if marker in kwargs.get("input", ""):
                        return completed(cmd, *result)
                return completed(cmd, 0, dry_run_response(0))

            subcommand = next((c for c in ("compile", "ls") if c in cmd), None)
            return completed(cmd, *self.dbt_results.get(subcommand, (0, "")))

    return FakeSubprocess()


@pytest.fixture
def bq_response():
    """bqのドライランレスポンスを作成する関数を提供するフィクスチャ"""
    return dry_run_response


@pytest.fixture
def completed_process():
    """subprocess.runの戻り値を作成する関数を提供するフィクスチャ"""
    return completed
