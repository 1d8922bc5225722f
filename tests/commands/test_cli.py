"""CLIエントリポイントのテスト"""
import sys
from unittest.mock import patch

from click.testing import CliRunner

from dibbity.cli import __version__, cli, main


def test_cli_help():
    """サブコマンドが登録されていることをテスト"""
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ["dry-run", "open", "ls", "logs"]:
        assert command in result.output


def test_cli_version():
    """バージョン表示をテスト"""
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_invalid_config(tmp_path):
    """不正な設定ファイルの場合は終了コード1になることをテスト"""
    config = tmp_path / "dibbity.yml"
    config.write_text("- not\n- a mapping\n")

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config), "logs", "list"])

    assert result.exit_code == 1


def test_main_returns_zero_on_version():
    """mainが正常終了時に0を返すことをテスト"""
    with patch.object(sys, "argv", ["dibbity", "--version"]):
        assert main() == 0


def test_main_returns_one_on_usage_error():
    """mainが使い方エラー時に1を返すことをテスト"""
    with patch.object(sys, "argv", ["dibbity", "open"]):
        assert main() == 1


def test_main_returns_one_on_command_failure():
    """mainがコマンド失敗時に1を返すことをテスト"""
    with patch.object(sys, "argv", ["dibbity", "dry-run", "orders"]):
        assert main() == 1
